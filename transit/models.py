"""
Transit — Models

A TransitRecord is quantity that has left a CD's stock but not yet
entered the destination unit's stock. Delivered is terminal: the
quantity has then been credited to the destination exactly once.

@file transit/models.py
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class TransitRecord(BaseModel):

    class StatusChoices(models.TextChoices):
        IN_TRANSIT = 'in_transit', _('In transit')
        DELIVERED = 'delivered', _('Delivered')

    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='transit_records',
        verbose_name=_('item'),
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    from_cd = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='outgoing_transit',
        verbose_name=_('origin CD'),
    )
    to_unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='incoming_transit',
        verbose_name=_('destination unit'),
    )
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices, default=StatusChoices.IN_TRANSIT,
        db_index=True,
    )
    sent_at = models.DateTimeField(_('sent at'), default=timezone.now)
    delivered_at = models.DateTimeField(_('delivered at'), null=True, blank=True)
    delivered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('delivered by'),
    )
    request = models.ForeignKey(
        'requisitions.SupplyRequest',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='transit_records',
        verbose_name=_('request'),
    )
    request_item = models.ForeignKey(
        'requisitions.SupplyRequestItem',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='transit_records',
        verbose_name=_('request item'),
    )
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('transit record')
        verbose_name_plural = _('transit records')
        ordering = ['-sent_at']
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name='transit_quantity_positive'),
            models.CheckConstraint(
                condition=(
                    Q(status='in_transit', delivered_at__isnull=True)
                    | Q(status='delivered', delivered_at__isnull=False)
                ),
                name='transit_delivered_at_matches_status',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'to_unit'], name='transit_status_unit_idx'),
            models.Index(fields=['request', 'status'], name='transit_request_status_idx'),
        ]

    def __str__(self):
        return f'{self.quantity} × {self.item_id} {self.from_cd_id}->{self.to_unit_id} ({self.status})'

    @property
    def is_delivered(self) -> bool:
        return self.status == self.StatusChoices.DELIVERED
