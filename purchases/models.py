"""
Purchases — Models

Purchase / PurchaseItem: an order to restock a CD, optionally spawned by
a supply request's shortfall (each PurchaseItem then points back at the
request item it covers), charged to the requesting unit's UnitBudget.
Quotation / QuotationItem / QuotationResponse: the price survey run
before buying.

@file purchases/models.py
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


# ---------------------------------------------------------------------------
# Unit budgets
# ---------------------------------------------------------------------------

class UnitBudget(BaseModel):
    """
    Money a unit may spend on purchases between period_start and
    period_end (inclusive). used_amount grows when a purchase charged to
    the budget is finalized.
    """

    unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='budgets',
        verbose_name=_('unit'),
    )
    period_start = models.DateField(_('period start'))
    period_end = models.DateField(_('period end'))
    budget_amount = models.DecimalField(_('budget amount'), max_digits=14, decimal_places=2)
    used_amount = models.DecimalField(_('used amount'), max_digits=14, decimal_places=2, default=Decimal('0'))

    class Meta:
        verbose_name = _('unit budget')
        verbose_name_plural = _('unit budgets')
        ordering = ['-period_start']
        constraints = [
            models.UniqueConstraint(fields=['unit', 'period_start', 'period_end'], name='unique_unit_budget_period'),
            models.CheckConstraint(condition=Q(budget_amount__gte=0), name='unit_budget_amount_non_negative'),
            models.CheckConstraint(condition=Q(used_amount__gte=0), name='unit_budget_used_non_negative'),
            models.CheckConstraint(condition=Q(period_end__gte=models.F('period_start')), name='unit_budget_period_order'),
        ]

    def __str__(self):
        return f'{self.unit_id} {self.period_start}..{self.period_end}'

    @property
    def available_amount(self) -> Decimal:
        return self.budget_amount - self.used_amount


class Purchase(BaseModel):

    class StatusChoices(models.TextChoices):
        ORDER_PLACED = 'order_placed', _('Order placed')
        QUOTING = 'quoting', _('Quoting')
        PURCHASED_AWAITING = 'purchased_awaiting', _('Purchased, awaiting delivery')
        ARRIVED_AT_CD = 'arrived_at_cd', _('Arrived at CD')
        SENT = 'sent', _('Sent')
        FINALIZED = 'finalized', _('Finalized')
        ORDER_ERROR = 'order_error', _('Order error')

    unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='purchases',
        verbose_name=_('requesting unit'),
    )
    cd_unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='incoming_purchases',
        verbose_name=_('receiving CD'),
    )
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name='purchases',
        verbose_name=_('requester'),
    )
    status = models.CharField(
        _('status'), max_length=20,
        choices=StatusChoices.choices, default=StatusChoices.ORDER_PLACED,
        db_index=True,
    )
    supplier = models.ForeignKey(
        'catalog.Supplier',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='purchases',
        verbose_name=_('supplier'),
    )
    total_value = models.DecimalField(_('total value'), max_digits=14, decimal_places=2, default=Decimal('0'))
    notes = models.TextField(_('notes'), blank=True)
    error_description = models.TextField(_('error description'), blank=True)
    request = models.ForeignKey(
        'requisitions.SupplyRequest',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='purchases',
        verbose_name=_('supply request'),
    )
    budget = models.ForeignKey(
        UnitBudget,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='purchases',
        verbose_name=_('budget'),
    )
    finalized_at = models.DateTimeField(_('finalized at'), null=True, blank=True)

    class Meta:
        verbose_name = _('purchase')
        verbose_name_plural = _('purchases')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['cd_unit', 'status'], name='purchase_cd_status_idx'),
        ]

    def __str__(self):
        return f'Purchase {self.pk} ({self.status})'


class PurchaseItem(BaseModel):

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('purchase'),
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='purchase_items',
        verbose_name=_('item'),
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    unit_price = models.DecimalField(_('unit price'), max_digits=14, decimal_places=2, null=True, blank=True)
    total_price = models.DecimalField(_('total price'), max_digits=14, decimal_places=2, null=True, blank=True)
    supplier = models.ForeignKey(
        'catalog.Supplier',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='purchase_items',
        verbose_name=_('supplier'),
    )
    request_item = models.ForeignKey(
        'requisitions.SupplyRequestItem',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='purchase_items',
        verbose_name=_('request item'),
    )

    class Meta:
        verbose_name = _('purchase item')
        verbose_name_plural = _('purchase items')
        ordering = ['created_at']
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name='purchase_item_quantity_positive'),
        ]

    def __str__(self):
        return f'{self.quantity} × {self.item_id}'


class Quotation(BaseModel):

    class StatusChoices(models.TextChoices):
        DRAFT = 'draft', _('Draft')
        SENT = 'sent', _('Sent to suppliers')
        UNDER_REVIEW = 'under_review', _('Under review')
        FINALIZED = 'finalized', _('Finalized')
        CANCELLED = 'cancelled', _('Cancelled')
        EXPIRED = 'expired', _('Expired')

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name='quotations',
        verbose_name=_('purchase'),
    )
    title = models.CharField(_('title'), max_length=200)
    description = models.TextField(_('description'), blank=True)
    status = models.CharField(
        _('status'), max_length=15,
        choices=StatusChoices.choices, default=StatusChoices.DRAFT,
        db_index=True,
    )
    deadline = models.DateTimeField(_('deadline'), null=True, blank=True)

    class Meta:
        verbose_name = _('quotation')
        verbose_name_plural = _('quotations')
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class QuotationItem(BaseModel):
    """Item and quantity frozen at the time the quotation was opened."""

    quotation = models.ForeignKey(
        Quotation,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('quotation'),
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('item'),
    )
    item_code = models.CharField(_('item code'), max_length=50)
    quantity = models.PositiveIntegerField(_('quantity'))

    class Meta:
        verbose_name = _('quotation item')
        verbose_name_plural = _('quotation items')
        constraints = [
            models.UniqueConstraint(fields=['quotation', 'item'], name='unique_quotation_item'),
        ]

    def __str__(self):
        return f'{self.item_code} × {self.quantity}'


class QuotationResponse(BaseModel):

    quotation = models.ForeignKey(
        Quotation,
        on_delete=models.CASCADE,
        related_name='responses',
        verbose_name=_('quotation'),
    )
    supplier = models.ForeignKey(
        'catalog.Supplier',
        on_delete=models.PROTECT,
        related_name='quotation_responses',
        verbose_name=_('supplier'),
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('item'),
    )
    unit_price = models.DecimalField(_('unit price'), max_digits=14, decimal_places=2)
    delivery_days = models.PositiveIntegerField(_('delivery days'), null=True, blank=True)
    notes = models.TextField(_('notes'), blank=True)
    is_selected = models.BooleanField(_('selected'), default=False)

    class Meta:
        verbose_name = _('quotation response')
        verbose_name_plural = _('quotation responses')
        ordering = ['unit_price']
        constraints = [
            models.UniqueConstraint(
                fields=['quotation', 'supplier', 'item'], name='unique_quotation_response',
            ),
            models.UniqueConstraint(
                fields=['quotation', 'item'], condition=Q(is_selected=True),
                name='one_selected_response_per_item',
            ),
            models.CheckConstraint(condition=Q(unit_price__gte=0), name='quotation_response_price_non_negative'),
        ]

    def __str__(self):
        return f'{self.supplier_id}: {self.unit_price}'
