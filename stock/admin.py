"""
Stock — Django Admin Configuration

Read-only views of both ledger partitions and the Movement journal.
Quantities change only through StockService, so the admin never edits
them. Movement is INSERT ONLY: save() blocks updates, delete() raises.

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import CDStockRecord, Movement, StockRecord, StockStatus

_STATUS_COLORS = {
    StockStatus.EMPTY: '#ef4444',
    StockStatus.LOW: '#eab308',
    StockStatus.NORMAL: '#22c55e',
}


class StockRecordAdminMixin:
    list_display = ('item', 'unit', 'quantity', 'min_quantity', 'max_quantity', 'status_badge', 'location', 'updated_at')
    list_filter = ('unit',)
    search_fields = ('item__code', 'item__name', 'unit__name', 'location')
    list_select_related = ('item', 'unit')
    show_full_result_count = False
    list_per_page = 50
    ordering = ('unit__name', 'item__name')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:4px; font-size:11px; font-weight:600;">{}</span>',
            _STATUS_COLORS.get(obj.status, '#6b7280'), StockStatus(obj.status).label,
        )


@admin.register(StockRecord)
class StockRecordAdmin(StockRecordAdminMixin, admin.ModelAdmin):
    pass


@admin.register(CDStockRecord)
class CDStockRecordAdmin(StockRecordAdminMixin, admin.ModelAdmin):
    list_display = StockRecordAdminMixin.list_display + ('unit_price', 'price_updated_by')


@admin.register(Movement)
class MovementAdmin(admin.ModelAdmin):
    list_display = (
        'created_at', 'movement_type', 'item', 'quantity',
        'from_unit', 'to_unit', 'reference', 'created_by',
    )
    list_filter = ('movement_type', 'created_at')
    search_fields = ('reference', 'item__code', 'item__name')
    readonly_fields = (
        'id', 'item', 'from_unit', 'to_unit', 'quantity', 'movement_type',
        'reference', 'reference_type', 'reference_id', 'notes',
        'created_by', 'created_at',
    )
    list_select_related = ('item', 'from_unit', 'to_unit', 'created_by')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)

    fieldsets = (
        (_('Movement'), {
            'fields': ('id', 'movement_type', 'item', 'quantity', 'from_unit', 'to_unit'),
        }),
        (_('Reference'), {
            'fields': ('reference', 'reference_type', 'reference_id', 'notes'),
        }),
        (_('Audit'), {
            'fields': ('created_by', 'created_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
