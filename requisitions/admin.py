"""
Requisitions — Django Admin Configuration

Requests are read-only here: status changes must go through
SupplyRequestService so the state machine and audit trail hold.

@file requisitions/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import SupplyRequest, SupplyRequestItem


class SupplyRequestItemInline(admin.TabularInline):
    model = SupplyRequestItem
    extra = 0
    can_delete = False
    fields = (
        'item', 'quantity_requested', 'quantity_approved', 'quantity_sent',
        'cd_stock_available', 'needs_purchase', 'has_error',
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SupplyRequest)
class SupplyRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'requesting_unit', 'cd_unit', 'status', 'priority', 'requester', 'created_at')
    list_filter = ('status', 'priority', 'cd_unit')
    search_fields = ('id', 'requesting_unit__name', 'requester__email', 'notes')
    list_select_related = ('requesting_unit', 'cd_unit', 'requester')
    date_hierarchy = 'created_at'
    inlines = [SupplyRequestItemInline]
    readonly_fields = (
        'id', 'requesting_unit', 'cd_unit', 'requester', 'status', 'priority', 'notes',
        'approved_by', 'approved_at', 'rejection_reason', 'error_description',
        'sent_at', 'received_at', 'created_at', 'updated_at',
    )

    fieldsets = (
        (_('Request'), {'fields': ('id', 'requesting_unit', 'cd_unit', 'requester', 'priority', 'notes')}),
        (_('Workflow'), {
            'fields': (
                'status', 'approved_by', 'approved_at', 'rejection_reason',
                'error_description', 'sent_at', 'received_at',
            ),
        }),
        (_('Timestamps'), {'fields': ('created_at', 'updated_at')}),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
