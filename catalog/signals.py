"""
Catalog — Signals

Audit logging for Unit, Item and Supplier lifecycle events.

@file catalog/signals.py
"""

import logging

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_UPDATE
from core.services import AuditService

from .models import Item, Supplier, Unit

logger = logging.getLogger('depotrack')

_pre_save_state: dict = {}

_AUDIT_EXCLUDE = {'created_at', 'updated_at'}


def _snapshot(instance):
    data = AuditService.snapshot(instance)
    return {k: v for k, v in data.items() if k not in _AUDIT_EXCLUDE}


@receiver(pre_save, sender=Unit)
@receiver(pre_save, sender=Item)
@receiver(pre_save, sender=Supplier)
def catalog_pre_save(sender, instance, **kwargs):
    if instance.pk:
        try:
            old = sender.objects.get(pk=instance.pk)
            _pre_save_state[(sender.__name__, str(instance.pk))] = _snapshot(old)
        except sender.DoesNotExist:
            pass


@receiver(post_save, sender=Unit)
@receiver(post_save, sender=Item)
@receiver(post_save, sender=Supplier)
def catalog_post_save(sender, instance, created, **kwargs):
    action = AUDIT_ACTION_CREATE if created else AUDIT_ACTION_UPDATE
    old = _pre_save_state.pop((sender.__name__, str(instance.pk)), None)
    new = _snapshot(instance)
    if not created and old == new:
        return
    AuditService.log(
        actor=getattr(instance, '_current_user', None),
        action=action,
        model_name=sender.__name__,
        object_id=str(instance.pk),
        old_values=old,
        new_values=new,
    )
