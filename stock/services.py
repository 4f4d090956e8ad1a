"""
Stock — Service Layer

Ledger primitives (get_quantity, increment, decrement, set_absolute) and
the actor-facing stock operations built on them (add_stock,
adjust_stock, transfer_stock, ...).

Every quantity change is one conditional UPDATE in the database:
quantity = quantity + delta, or quantity = quantity - delta guarded by
quantity >= delta. There is no read-modify-write in Python, so
concurrent sessions never lose an update. Actor-facing operations write
exactly one Movement per quantity change, inside the same transaction.

@file stock/services.py
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_STOCK_CHANGE,
    AUDIT_ACTION_UPDATE,
    LEDGER_OP_DELETE,
    LEDGER_OP_INSERT,
    LEDGER_OP_UPDATE,
    LEDGER_TABLE_CD_STOCK,
    LEDGER_TABLE_UNIT_STOCK,
)
from core.exceptions import BusinessRuleViolation, InsufficientStockError
from core.services import AuditService
from users.context import ActorContext, as_actor

from .models import CDStockRecord, Movement, StockRecord
from .signals import emit_ledger_change

logger = logging.getLogger('depotrack')

_METADATA_FIELDS = ('min_quantity', 'max_quantity', 'location')
_CD_METADATA_FIELDS = _METADATA_FIELDS + ('unit_price', 'price_updated_by', 'price_updated_at')


def stock_model_for(unit):
    """CD stock partition for distribution centers, unit stock otherwise."""
    return CDStockRecord if unit.is_cd else StockRecord


def _table_for(model) -> str:
    return LEDGER_TABLE_CD_STOCK if model is CDStockRecord else LEDGER_TABLE_UNIT_STOCK


def _clean_metadata(model, values: dict | None) -> dict:
    allowed = _CD_METADATA_FIELDS if model is CDStockRecord else _METADATA_FIELDS
    return {k: v for k, v in (values or {}).items() if k in allowed and v is not None}


def _user_of(actor):
    return getattr(actor, 'user', actor)


def _require_partition_access(actor: ActorContext, unit) -> None:
    if unit.is_cd:
        actor.require('can_access_cd_stock', 'You do not have access to CD stock.')
    else:
        actor.require('can_access_inventory', 'You do not have access to unit inventory.')
    actor.require_unit(unit.pk, 'You may only manage stock of your own unit.')


def _check_quantity_bounds(quantity: int, min_quantity, max_quantity) -> None:
    if quantity < 0:
        raise BusinessRuleViolation(detail='Quantity cannot be negative.')
    if max_quantity is not None and min_quantity is not None and min_quantity > max_quantity:
        raise BusinessRuleViolation(detail='Minimum quantity cannot exceed maximum quantity.')
    if max_quantity is not None and quantity > max_quantity:
        raise BusinessRuleViolation(
            detail=f'Quantity {quantity} exceeds maximum quantity {max_quantity}.',
        )


def _insert_or_lock(model, item, unit, **fields):
    """
    Insert the (item, unit) row inside a savepoint. When a concurrent
    session inserted it first, return that row locked instead.
    Returns (record, created).
    """
    try:
        with transaction.atomic():
            return model.objects.create(item=item, unit=unit, **fields), True
    except IntegrityError:
        logger.info('Concurrent insert on %s item=%s unit=%s, using existing row', model.__name__, item.pk, unit.pk)
        return model.objects.select_for_update().get(item=item, unit=unit), False


def _stock_snapshot(record) -> dict:
    return {
        'item': str(record.item_id),
        'unit': str(record.unit_id),
        'quantity': record.quantity,
        'min_quantity': record.min_quantity,
        'max_quantity': record.max_quantity,
        'location': record.location,
    }


class StockService:
    """Per-(item, unit) balances and the operations that move them."""

    # -----------------------------------------------------------------------
    # Primitives
    # -----------------------------------------------------------------------

    @staticmethod
    def get_record(item, unit):
        return stock_model_for(unit).objects.filter(item=item, unit=unit).first()

    @staticmethod
    def get_quantity(item, unit) -> int | None:
        """Current quantity, or None when no record exists for the pair."""
        return (
            stock_model_for(unit).objects
            .filter(item=item, unit=unit)
            .values_list('quantity', flat=True)
            .first()
        )

    @staticmethod
    @transaction.atomic
    def increment(item, unit, delta: int, defaults: dict | None = None, overrides: dict | None = None):
        """
        Add ``delta`` to the (item, unit) record, creating it when missing.

        ``defaults`` seed a new record only. ``overrides`` are written on an
        existing record too; every other metadata field is preserved. The
        merged sum is not checked against max_quantity.
        """
        if delta <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')

        model = stock_model_for(unit)
        overrides = _clean_metadata(model, overrides)

        if not model.objects.filter(item=item, unit=unit).exists():
            seed = {'location': model.DEFAULT_LOCATION}
            seed.update(_clean_metadata(model, defaults))
            seed.update(overrides)
            record, created = _insert_or_lock(model, item, unit, quantity=delta, **seed)
            if created:
                emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_INSERT)
                return record
            # Lost the insert race; merge into the row that won.

        model.objects.filter(item=item, unit=unit).update(
            quantity=F('quantity') + delta,
            updated_at=timezone.now(),
            **overrides,
        )
        record = model.objects.get(item=item, unit=unit)
        if record.max_quantity is not None and record.quantity > record.max_quantity:
            logger.warning(
                'Merged stock above maximum: %s item=%s unit=%s quantity=%s max=%s',
                model.__name__, item.pk, unit.pk, record.quantity, record.max_quantity,
            )
        emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_UPDATE)
        return record

    @staticmethod
    @transaction.atomic
    def decrement(item, unit, delta: int):
        """
        Subtract ``delta`` only if the result stays >= 0. On failure nothing
        changes and InsufficientStockError carries the available quantity.
        """
        if delta <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')

        model = stock_model_for(unit)
        updated = model.objects.filter(item=item, unit=unit, quantity__gte=delta).update(
            quantity=F('quantity') - delta,
            updated_at=timezone.now(),
        )
        if not updated:
            available = StockService.get_quantity(item, unit) or 0
            raise InsufficientStockError(
                detail=f'Insufficient stock: available {available}, requested {delta}.',
            )
        record = model.objects.get(item=item, unit=unit)
        emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_UPDATE)
        return record

    @staticmethod
    @transaction.atomic
    def set_absolute(item, unit, quantity: int, defaults: dict | None = None) -> tuple[int, int]:
        """Replace the quantity. Returns (old, new); a missing record counts as 0."""
        if quantity < 0:
            raise BusinessRuleViolation(detail='Quantity cannot be negative.')

        model = stock_model_for(unit)
        record = model.objects.select_for_update().filter(item=item, unit=unit).first()
        if record is None:
            seed = {'location': model.DEFAULT_LOCATION}
            seed.update(_clean_metadata(model, defaults))
            record, created = _insert_or_lock(model, item, unit, quantity=quantity, **seed)
            if created:
                emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_INSERT)
                return 0, quantity

        old = record.quantity
        model.objects.filter(pk=record.pk).update(quantity=quantity, updated_at=timezone.now())
        emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_UPDATE)
        return old, quantity

    @staticmethod
    def record_movement(
        *,
        item,
        quantity: int,
        movement_type: str,
        actor=None,
        from_unit=None,
        to_unit=None,
        reference: str = '',
        reference_type: str = '',
        reference_id=None,
        notes: str = '',
    ) -> Movement:
        movement = Movement(
            item=item,
            from_unit=from_unit,
            to_unit=to_unit,
            quantity=quantity,
            movement_type=movement_type,
            reference=reference,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
            created_by=_user_of(actor),
        )
        movement.save()
        logger.info(
            'Movement %s %s qty=%s item=%s %s->%s',
            movement_type, movement.pk, quantity, item.pk,
            getattr(from_unit, 'pk', None), getattr(to_unit, 'pk', None),
        )
        return movement

    # -----------------------------------------------------------------------
    # Actor-facing operations
    # -----------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def add_stock(
        *,
        actor,
        item,
        unit,
        quantity: int,
        min_quantity: int | None = None,
        max_quantity: int | None = None,
        location: str | None = None,
        unit_price: Decimal | None = None,
        notes: str = '',
    ):
        """
        Create a stock record, or merge into the existing one for the pair.
        The submitted quantity is checked against the submitted maximum; the
        merged sum is not.
        """
        actor = as_actor(actor)
        _require_partition_access(actor, unit)
        _check_quantity_bounds(quantity, min_quantity, max_quantity)

        model = stock_model_for(unit)
        metadata = {
            'min_quantity': min_quantity,
            'max_quantity': max_quantity,
            'location': location or None,
        }
        if model is CDStockRecord and unit_price is not None:
            metadata.update(
                unit_price=unit_price,
                price_updated_by=actor.user,
                price_updated_at=timezone.now(),
            )

        existing = StockService.get_record(item, unit)
        old_values = _stock_snapshot(existing) if existing else None

        if quantity > 0:
            record = StockService.increment(item, unit, quantity, overrides=metadata)
            StockService.record_movement(
                item=item,
                quantity=quantity,
                movement_type=Movement.MovementType.ADJUSTMENT,
                actor=actor,
                to_unit=unit,
                reference='Stock entry',
                reference_type=model.__name__,
                reference_id=record.pk,
                notes=notes,
            )
        else:
            settings_only = {'min_quantity': min_quantity, 'max_quantity': max_quantity, 'location': location or None}
            if model is CDStockRecord:
                settings_only['unit_price'] = unit_price
            if existing is not None:
                return StockService.update_stock_settings(actor=actor, record=existing, **settings_only)

            seed = {'location': model.DEFAULT_LOCATION}
            seed.update(_clean_metadata(model, metadata))
            record, created = _insert_or_lock(model, item, unit, quantity=0, created_by=actor.user, **seed)
            if not created:
                return StockService.update_stock_settings(actor=actor, record=record, **settings_only)
            emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_INSERT)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE if existing else AUDIT_ACTION_CREATE,
            model_name=model.__name__,
            object_id=str(record.pk),
            old_values=old_values,
            new_values=_stock_snapshot(record),
        )
        return record

    @staticmethod
    @transaction.atomic
    def update_stock_settings(
        *,
        actor,
        record,
        min_quantity: int | None = None,
        max_quantity: int | None = None,
        location: str | None = None,
        unit_price: Decimal | None = None,
    ):
        """Change min/max/location (and CD price). Never touches the quantity."""
        actor = as_actor(actor)
        _require_partition_access(actor, record.unit)

        model = type(record)
        record = model.objects.select_for_update().get(pk=record.pk)
        old_values = _stock_snapshot(record)

        new_min = record.min_quantity if min_quantity is None else min_quantity
        new_max = record.max_quantity if max_quantity is None else max_quantity
        if new_max is not None and new_min > new_max:
            raise BusinessRuleViolation(detail='Minimum quantity cannot exceed maximum quantity.')

        record.min_quantity = new_min
        record.max_quantity = new_max
        update_fields = ['min_quantity', 'max_quantity', 'updated_by', 'updated_at']
        if location is not None:
            record.location = location
            update_fields.append('location')
        if model is CDStockRecord and unit_price is not None and unit_price != record.unit_price:
            record.unit_price = unit_price
            record.price_updated_by = actor.user
            record.price_updated_at = timezone.now()
            update_fields += ['unit_price', 'price_updated_by', 'price_updated_at']
        record.updated_by = actor.user
        record.save(update_fields=update_fields)
        emit_ledger_change(model, table=_table_for(model), record_id=record.pk, operation=LEDGER_OP_UPDATE)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name=model.__name__,
            object_id=str(record.pk),
            old_values=old_values,
            new_values=_stock_snapshot(record),
        )
        return record

    @staticmethod
    @transaction.atomic
    def adjust_stock(*, actor, item, unit, quantity: int, notes: str = ''):
        """
        Set an absolute quantity after a physical count. The Movement
        direction carries the sign: increases come from outside the
        ledger, decreases leave it.
        """
        actor = as_actor(actor)
        _require_partition_access(actor, unit)
        actor.require('can_update', 'You are not allowed to adjust stock.')

        old, new = StockService.set_absolute(item, unit, quantity)
        record = StockService.get_record(item, unit)
        if old == new:
            return record

        diff = new - old
        StockService.record_movement(
            item=item,
            quantity=abs(diff),
            movement_type=Movement.MovementType.ADJUSTMENT,
            actor=actor,
            from_unit=None if diff > 0 else unit,
            to_unit=unit if diff > 0 else None,
            reference='Stock adjustment',
            reference_type=type(record).__name__,
            reference_id=record.pk,
            notes=notes,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_CHANGE,
            model_name=type(record).__name__,
            object_id=str(record.pk),
            old_values={'quantity': old},
            new_values={'quantity': new, 'notes': notes},
        )
        return record

    @staticmethod
    @transaction.atomic
    def transfer_stock(
        *,
        actor,
        item,
        from_unit,
        to_unit,
        quantity: int,
        reference: str = '',
        notes: str = '',
    ) -> Movement:
        """Move stock directly between two units. Both legs or neither."""
        actor = as_actor(actor)
        actor.require('can_access_movements', 'You are not allowed to record transfers.')
        actor.require_unit(from_unit.pk, 'You may only transfer out of your own unit.')
        if from_unit.pk == to_unit.pk:
            raise BusinessRuleViolation(detail='Origin and destination must be different units.')
        if quantity <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')

        StockService.decrement(item, from_unit, quantity)
        StockService.increment(item, to_unit, quantity)
        movement = StockService.record_movement(
            item=item,
            quantity=quantity,
            movement_type=Movement.MovementType.TRANSFER,
            actor=actor,
            from_unit=from_unit,
            to_unit=to_unit,
            reference=reference or 'Manual transfer',
            notes=notes,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_CHANGE,
            model_name='Movement',
            object_id=str(movement.pk),
            new_values={
                'item': str(item.pk),
                'from_unit': str(from_unit.pk),
                'to_unit': str(to_unit.pk),
                'quantity': quantity,
            },
        )
        return movement

    @staticmethod
    @transaction.atomic
    def delete_stock_record(*, actor, record) -> None:
        actor = as_actor(actor)
        _require_partition_access(actor, record.unit)
        actor.require('can_delete', 'You are not allowed to delete stock records.')

        model = type(record)
        record = model.objects.select_for_update().get(pk=record.pk)
        if record.quantity != 0:
            raise BusinessRuleViolation(
                detail=f'Only empty stock records can be deleted (quantity {record.quantity}).',
            )
        snapshot = _stock_snapshot(record)
        record_id = record.pk
        record.delete()
        emit_ledger_change(model, table=_table_for(model), record_id=record_id, operation=LEDGER_OP_DELETE)
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name=model.__name__,
            object_id=str(record_id),
            old_values=snapshot,
        )
