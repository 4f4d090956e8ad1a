"""
Core — Django Admin Configuration

Read-only admin for the append-only AuditLog. Status changes show their
``old -> new`` pair in the changelist so a request or purchase history
reads top to bottom.

@file core/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):

    list_display = ('timestamp', 'action', 'model_name', 'object_id', 'transition', 'actor')
    list_filter = ('action', 'model_name')
    search_fields = ('object_id', 'actor__email')
    readonly_fields = [f.name for f in AuditLog._meta.fields]
    date_hierarchy = 'timestamp'
    list_select_related = ('actor',)
    show_full_result_count = False
    list_per_page = 100

    fieldsets = (
        (None, {'fields': ('id', 'timestamp', 'actor', 'action', 'model_name', 'object_id')}),
        (_('Values'), {'fields': ('old_values', 'new_values')}),
        (_('Client'), {'fields': ('ip_address', 'user_agent'), 'classes': ('collapse',)}),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Transition'))
    def transition(self, obj):
        if obj.action != AuditLog.ActionChoices.STATUS_CHANGE:
            return ''
        old = (obj.old_values or {}).get('status', '?')
        new = (obj.new_values or {}).get('status', '?')
        return f'{old} -> {new}'
