"""
Catalog — Django Admin Configuration

@file catalog/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import Item, Supplier, Unit


class SoftDeleteAdminMixin:
    """Hide soft-deleted rows unless the is_deleted filter is active."""

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if not request.GET.get('is_deleted__exact'):
            qs = qs.filter(is_deleted=False)
        return qs


@admin.register(Unit)
class UnitAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ('name', 'kind_badge', 'address', 'created_at')
    list_filter = ('is_cd', 'is_deleted')
    search_fields = ('name', 'address')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50
    ordering = ('name',)

    @admin.display(description=_('Kind'))
    def kind_badge(self, obj):
        color, label = ('#8b5cf6', _('Distribution center')) if obj.is_cd else ('#3b82f6', _('Unit'))
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:4px; font-size:11px; font-weight:600;">{}</span>',
            color, label,
        )


@admin.register(Item)
class ItemAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ('code', 'name', 'category', 'unit_measure', 'has_lifecycle', 'requires_maintenance')
    list_filter = ('category', 'has_lifecycle', 'requires_maintenance', 'show_in_company', 'is_deleted')
    search_fields = ('code', 'name', 'description')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    show_full_result_count = False
    list_per_page = 50
    ordering = ('name',)


@admin.register(Supplier)
class SupplierAdmin(SoftDeleteAdminMixin, admin.ModelAdmin):
    list_display = ('name', 'contact_person', 'email', 'phone', 'cnpj')
    list_filter = ('is_deleted',)
    search_fields = ('name', 'cnpj', 'contact_person', 'email')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50
    ordering = ('name',)
