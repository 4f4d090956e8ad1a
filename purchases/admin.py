"""
Purchases — Django Admin Configuration

@file purchases/admin.py
"""

from django.contrib import admin

from .models import Purchase, PurchaseItem, Quotation, QuotationItem, QuotationResponse, UnitBudget


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    can_delete = False
    fields = ('item', 'quantity', 'unit_price', 'total_price', 'supplier', 'request_item')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ('id', 'unit', 'cd_unit', 'status', 'supplier', 'total_value', 'request', 'created_at')
    list_filter = ('status', 'cd_unit')
    search_fields = ('id', 'unit__name', 'supplier__name', 'notes')
    list_select_related = ('unit', 'cd_unit', 'supplier')
    date_hierarchy = 'created_at'
    inlines = [PurchaseItemInline]
    readonly_fields = (
        'id', 'unit', 'cd_unit', 'requester', 'status', 'supplier', 'total_value',
        'request', 'finalized_at', 'error_description', 'created_at', 'updated_at',
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class QuotationItemInline(admin.TabularInline):
    model = QuotationItem
    extra = 0
    can_delete = False
    readonly_fields = ('item', 'item_code', 'quantity')


class QuotationResponseInline(admin.TabularInline):
    model = QuotationResponse
    extra = 0
    can_delete = False
    readonly_fields = ('supplier', 'item', 'unit_price', 'delivery_days', 'is_selected')


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ('title', 'purchase', 'status', 'deadline', 'created_at')
    list_filter = ('status',)
    search_fields = ('title', 'description')
    readonly_fields = ('purchase', 'status')
    inlines = [QuotationItemInline, QuotationResponseInline]


@admin.register(UnitBudget)
class UnitBudgetAdmin(admin.ModelAdmin):
    list_display = ('unit', 'period_start', 'period_end', 'budget_amount', 'used_amount', 'available')
    list_filter = ('unit',)
    list_select_related = ('unit',)
    readonly_fields = ('used_amount', 'created_at', 'updated_at')

    @admin.display(description='Available')
    def available(self, obj):
        return obj.available_amount
