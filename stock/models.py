"""
Stock — Models

Balance-based ledger. One row per (item, unit) holds the current
quantity, split into two partitions: StockRecord for consuming units and
CDStockRecord for distribution centers. Quantities are only changed
through stock.services, as single conditional UPDATE statements.

Movement is the append-only journal of every quantity change and is
INSERT ONLY: never update or delete.

@file stock/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class StockStatus(models.TextChoices):
    EMPTY = 'empty', _('Empty')
    LOW = 'low', _('Low')
    NORMAL = 'normal', _('Normal')


def derive_stock_status(quantity: int, min_quantity: int) -> str:
    if quantity == 0:
        return StockStatus.EMPTY
    if quantity <= min_quantity:
        return StockStatus.LOW
    return StockStatus.NORMAL


class BaseStockRecord(BaseModel):
    """Fields and constraints shared by both ledger partitions."""

    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('item'),
    )
    unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('unit'),
    )
    quantity = models.IntegerField(_('quantity'), default=0)
    min_quantity = models.PositiveIntegerField(_('minimum quantity'), default=0)
    max_quantity = models.PositiveIntegerField(_('maximum quantity'), null=True, blank=True)
    location = models.CharField(_('location within unit'), max_length=120, blank=True)

    class Meta:
        abstract = True

    def __str__(self):
        return f'{self.item_id}@{self.unit_id}: {self.quantity}'

    @property
    def status(self) -> str:
        return derive_stock_status(self.quantity, self.min_quantity)


class StockRecord(BaseStockRecord):
    """Stock held by a consuming unit."""

    DEFAULT_LOCATION = 'Estoque Geral'

    class Meta:
        verbose_name = _('unit stock record')
        verbose_name_plural = _('unit stock records')
        ordering = ['unit', 'item']
        constraints = [
            models.UniqueConstraint(fields=['item', 'unit'], name='unique_unit_stock_item_unit'),
            models.CheckConstraint(condition=Q(quantity__gte=0), name='unit_stock_quantity_non_negative'),
        ]
        indexes = [
            models.Index(fields=['unit', 'quantity'], name='unit_stock_unit_qty_idx'),
        ]


class CDStockRecord(BaseStockRecord):
    """Stock held by a distribution center. Carries a unit price."""

    DEFAULT_LOCATION = 'Estoque CD'

    unit_price = models.DecimalField(
        _('unit price'), max_digits=14, decimal_places=2, null=True, blank=True,
    )
    price_updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('price updated by'),
    )
    price_updated_at = models.DateTimeField(_('price updated at'), null=True, blank=True)

    class Meta:
        verbose_name = _('CD stock record')
        verbose_name_plural = _('CD stock records')
        ordering = ['unit', 'item']
        constraints = [
            models.UniqueConstraint(fields=['item', 'unit'], name='unique_cd_stock_item_unit'),
            models.CheckConstraint(condition=Q(quantity__gte=0), name='cd_stock_quantity_non_negative'),
        ]
        indexes = [
            models.Index(fields=['unit', 'quantity'], name='cd_stock_unit_qty_idx'),
        ]


class Movement(models.Model):
    """
    One immutable ledger entry (insert only).

    A null from_unit means the quantity came from outside the ledger
    (supplier, positive adjustment); a null to_unit means it left the
    ledger (negative adjustment). Summing movements per unit replays the
    current stock.
    """

    class MovementType(models.TextChoices):
        TRANSFER = 'transfer', _('Transfer')
        ADJUSTMENT = 'adjustment', _('Adjustment')
        PURCHASE = 'purchase', _('Purchase')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('item'),
    )
    from_unit = models.ForeignKey(
        'catalog.Unit',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='outgoing_movements',
        verbose_name=_('from unit'),
    )
    to_unit = models.ForeignKey(
        'catalog.Unit',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='incoming_movements',
        verbose_name=_('to unit'),
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    movement_type = models.CharField(
        _('movement type'), max_length=12,
        choices=MovementType.choices, db_index=True,
    )
    reference = models.CharField(_('reference'), max_length=200, blank=True)
    reference_type = models.CharField(
        _('reference type'), max_length=100, blank=True,
        help_text=_('Model name of the source record: TransitRecord, Purchase, ...'),
    )
    reference_id = models.UUIDField(_('reference ID'), null=True, blank=True, db_index=True)
    notes = models.TextField(_('notes'), blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('created by'),
    )
    created_at = models.DateTimeField(_('created at'), auto_now_add=True, db_index=True)
    # No updated_at — immutable record.

    class Meta:
        verbose_name = _('movement')
        verbose_name_plural = _('movements')
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name='movement_quantity_positive'),
            models.CheckConstraint(
                condition=Q(from_unit__isnull=False) | Q(to_unit__isnull=False),
                name='movement_has_a_side',
            ),
        ]
        indexes = [
            models.Index(fields=['item', 'from_unit'], name='movement_item_from_idx'),
            models.Index(fields=['item', 'to_unit'], name='movement_item_to_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='movement_reference_idx'),
        ]

    def __str__(self):
        return f'{self.movement_type} {self.quantity} item={self.item_id} {self.from_unit_id}->{self.to_unit_id}'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('Movement is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('Movement records cannot be deleted.')
