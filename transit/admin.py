"""
Transit — Django Admin Configuration

Read-only: transit rows change only through TransitService.

@file transit/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import TransitRecord


@admin.register(TransitRecord)
class TransitRecordAdmin(admin.ModelAdmin):
    list_display = ('sent_at', 'item', 'quantity', 'from_cd', 'to_unit', 'status_badge', 'delivered_at', 'request')
    list_filter = ('status', 'from_cd', 'to_unit')
    search_fields = ('item__code', 'item__name')
    list_select_related = ('item', 'from_cd', 'to_unit')
    date_hierarchy = 'sent_at'
    show_full_result_count = False
    list_per_page = 50
    ordering = ('-sent_at',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        color = '#22c55e' if obj.is_delivered else '#3b82f6'
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:4px; font-size:11px; font-weight:600;">{}</span>',
            color, obj.get_status_display(),
        )
