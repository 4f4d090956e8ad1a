"""
Requisitions — Models

A SupplyRequest is a unit's ask for items from a distribution center.
Its status only moves through requisitions.state_machine; its items
carry the requested, approved and sent quantities and the review-time
snapshot of CD availability.

@file requisitions/models.py
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class SupplyRequest(BaseModel):

    class StatusChoices(models.TextChoices):
        REQUESTED = 'requested', _('Requested')
        REVIEWING = 'reviewing', _('Reviewing')
        APPROVED = 'approved', _('Approved')
        APPROVED_PENDING_PURCHASE = 'approved_pending_purchase', _('Approved, pending purchase')
        REJECTED = 'rejected', _('Rejected')
        PREPARING = 'preparing', _('Preparing')
        SENT = 'sent', _('Sent')
        RECEIVED = 'received', _('Received')
        APPROVED_BY_UNIT = 'approved_by_unit', _('Approved by unit')
        ORDER_ERROR = 'order_error', _('Order error')
        CANCELLED = 'cancelled', _('Cancelled')

    class PriorityChoices(models.TextChoices):
        LOW = 'low', _('Low')
        NORMAL = 'normal', _('Normal')
        HIGH = 'high', _('High')
        URGENT = 'urgent', _('Urgent')

    requesting_unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='supply_requests',
        verbose_name=_('requesting unit'),
    )
    cd_unit = models.ForeignKey(
        'catalog.Unit',
        on_delete=models.PROTECT,
        related_name='fulfilled_requests',
        verbose_name=_('fulfilling CD'),
    )
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        on_delete=models.SET_NULL,
        related_name='supply_requests',
        verbose_name=_('requester'),
    )
    status = models.CharField(
        _('status'), max_length=30,
        choices=StatusChoices.choices, default=StatusChoices.REQUESTED,
        db_index=True,
    )
    priority = models.CharField(
        _('priority'), max_length=10,
        choices=PriorityChoices.choices, default=PriorityChoices.NORMAL,
        db_index=True,
    )
    notes = models.TextField(_('notes'), blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('approved by'),
    )
    approved_at = models.DateTimeField(_('approved at'), null=True, blank=True)
    rejection_reason = models.TextField(_('rejection reason'), blank=True)
    error_description = models.TextField(_('error description'), blank=True)
    sent_at = models.DateTimeField(_('sent at'), null=True, blank=True)
    received_at = models.DateTimeField(_('received at'), null=True, blank=True)

    class Meta:
        verbose_name = _('supply request')
        verbose_name_plural = _('supply requests')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['requesting_unit', 'status'], name='request_unit_status_idx'),
            models.Index(fields=['cd_unit', 'status'], name='request_cd_status_idx'),
        ]

    def __str__(self):
        return f'Request {self.pk} ({self.status})'


class SupplyRequestItem(BaseModel):

    request = models.ForeignKey(
        SupplyRequest,
        on_delete=models.PROTECT,
        related_name='items',
        verbose_name=_('request'),
    )
    item = models.ForeignKey(
        'catalog.Item',
        on_delete=models.PROTECT,
        related_name='request_items',
        verbose_name=_('item'),
    )
    quantity_requested = models.PositiveIntegerField(_('quantity requested'))
    quantity_approved = models.PositiveIntegerField(_('quantity approved'), null=True, blank=True)
    quantity_sent = models.PositiveIntegerField(_('quantity sent'), default=0)
    cd_stock_available = models.IntegerField(
        _('CD stock available'), null=True, blank=True,
        help_text=_('CD quantity read at review time.'),
    )
    needs_purchase = models.BooleanField(_('needs purchase'), default=False)
    unit_price = models.DecimalField(_('unit price'), max_digits=14, decimal_places=2, null=True, blank=True)
    has_error = models.BooleanField(_('has error'), default=False)
    error_description = models.TextField(_('error description'), blank=True)
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('supply request item')
        verbose_name_plural = _('supply request items')
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['request', 'item'], name='unique_request_item'),
            models.CheckConstraint(condition=Q(quantity_requested__gt=0), name='request_item_quantity_positive'),
            models.CheckConstraint(
                condition=Q(quantity_approved__isnull=True) | Q(quantity_approved__lte=F('quantity_requested')),
                name='request_item_approved_within_requested',
            ),
        ]

    def __str__(self):
        return f'{self.quantity_requested} × {self.item_id}'

    @property
    def shortfall(self) -> int:
        if self.cd_stock_available is None:
            return 0
        return max(self.quantity_requested - self.cd_stock_available, 0)
