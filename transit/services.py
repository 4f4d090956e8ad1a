"""
Transit — Service Layer

dispatch: CD stock decrement + TransitRecord creation, one transaction.
deliver: TransitRecord close + destination stock increment + transfer
Movement, one transaction, followed by the request completion check.

@file transit/services.py
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from core.constants import (
    AUDIT_ACTION_CREATE,
    LEDGER_OP_INSERT,
    LEDGER_OP_UPDATE,
    LEDGER_TABLE_TRANSIT,
)
from core.exceptions import BusinessRuleViolation, InvalidStateTransition, ResourceNotFoundError
from core.services import AuditService
from stock.models import Movement
from stock.services import StockService
from stock.signals import emit_ledger_change
from users.context import as_actor

from .models import TransitRecord

logger = logging.getLogger('depotrack')


class TransitService:

    @staticmethod
    @transaction.atomic
    def dispatch(
        *,
        actor,
        item,
        quantity: int,
        from_cd,
        to_unit,
        request=None,
        request_item=None,
        notes: str = '',
    ) -> TransitRecord:
        """
        Take ``quantity`` out of the CD and put it in flight. Fails as a
        whole with InsufficientStockError when the CD cannot cover it.
        """
        actor = as_actor(actor)
        actor.require('can_review_requests', 'You are not allowed to dispatch stock.')
        if not from_cd.is_cd:
            raise BusinessRuleViolation(detail=f'{from_cd} is not a distribution center.')
        if from_cd.pk == to_unit.pk:
            raise BusinessRuleViolation(detail='Origin and destination must be different units.')
        if quantity <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')

        StockService.decrement(item, from_cd, quantity)
        record = TransitRecord.objects.create(
            item=item,
            quantity=quantity,
            from_cd=from_cd,
            to_unit=to_unit,
            request=request,
            request_item=request_item,
            notes=notes,
            created_by=actor.user,
        )
        emit_ledger_change(TransitRecord, table=LEDGER_TABLE_TRANSIT, record_id=record.pk, operation=LEDGER_OP_INSERT)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='TransitRecord',
            object_id=str(record.pk),
            new_values={
                'item': str(item.pk),
                'quantity': quantity,
                'from_cd': str(from_cd.pk),
                'to_unit': str(to_unit.pk),
                'request': str(request.pk) if request else None,
            },
        )
        logger.info('Dispatched %s × item %s from %s to %s (transit %s)', quantity, item.pk, from_cd.pk, to_unit.pk, record.pk)
        return record

    @staticmethod
    @transaction.atomic
    def deliver(*, actor, transit_id) -> TransitRecord:
        """
        Confirm arrival. Only an in-transit record can be delivered, so a
        repeated call is rejected and never credits the stock twice.
        """
        actor = as_actor(actor)
        try:
            record = (
                TransitRecord.objects
                .select_for_update()
                .select_related('item', 'from_cd', 'to_unit')
                .get(pk=transit_id)
            )
        except TransitRecord.DoesNotExist:
            raise ResourceNotFoundError(detail='Transit record not found.')

        actor.require('can_receive_transit', 'You are not allowed to confirm deliveries.')
        actor.require_unit(record.to_unit_id, 'Only the destination unit can confirm this delivery.')

        if record.status != TransitRecord.StatusChoices.IN_TRANSIT:
            raise InvalidStateTransition(detail='Transit record was already delivered.')

        record.status = TransitRecord.StatusChoices.DELIVERED
        record.delivered_at = timezone.now()
        record.delivered_by = actor.user
        record.updated_by = actor.user
        record.save(update_fields=['status', 'delivered_at', 'delivered_by', 'updated_by', 'updated_at'])

        StockService.increment(record.item, record.to_unit, record.quantity)
        StockService.record_movement(
            item=record.item,
            quantity=record.quantity,
            movement_type=Movement.MovementType.TRANSFER,
            actor=actor,
            from_unit=record.from_cd,
            to_unit=record.to_unit,
            reference=f'Request #{record.request_id}' if record.request_id else f'Transit #{record.pk}',
            reference_type='TransitRecord',
            reference_id=record.pk,
        )
        emit_ledger_change(TransitRecord, table=LEDGER_TABLE_TRANSIT, record_id=record.pk, operation=LEDGER_OP_UPDATE)
        AuditService.log_status_change(
            actor=actor,
            instance=record,
            old_status=TransitRecord.StatusChoices.IN_TRANSIT,
            new_status=TransitRecord.StatusChoices.DELIVERED,
        )
        logger.info('Delivered transit %s to unit %s', record.pk, record.to_unit_id)

        if record.request_id:
            from requisitions.services import SupplyRequestService

            SupplyRequestService.complete_if_delivered(request_id=record.request_id, actor=actor)
        return record

    @staticmethod
    def progress(record: TransitRecord, nominal_hours: float, now=None) -> tuple[int, object]:
        """Presentation only: (percent elapsed, estimated arrival)."""
        eta = record.sent_at + timedelta(hours=nominal_hours)
        if record.is_delivered:
            return 100, record.delivered_at
        now = now or timezone.now()
        total = nominal_hours * 3600
        elapsed = (now - record.sent_at).total_seconds()
        percent = 0 if total <= 0 else int(min(max(elapsed * 100 / total, 0), 99))
        return percent, eta
