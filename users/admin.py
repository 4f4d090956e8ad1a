"""
Users — Django Admin Configuration

User admin showing each role with the unit scope it acts on.
Soft-deleted users are hidden unless the is_deleted filter is used.

@file users/admin.py
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):

    list_display = (
        'email', 'full_name', 'role_badge', 'is_active', 'is_staff', 'last_login',
    )
    list_filter = ('role', 'is_active', 'is_staff', 'is_superuser', 'is_deleted', 'unit__is_cd')
    search_fields = ('email', 'full_name')
    readonly_fields = (
        'id', 'created_at', 'updated_at', 'created_by', 'updated_by',
        'date_joined', 'last_login',
    )
    date_hierarchy = 'created_at'
    list_select_related = ('unit',)
    raw_id_fields = ('unit',)
    show_full_result_count = False
    list_per_page = 30
    ordering = ('-created_at',)

    fieldsets = (
        (None, {
            'fields': ('id', 'email', 'password'),
        }),
        (_('Profile'), {
            'fields': ('full_name', 'role', 'unit'),
        }),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        (_('Audit'), {
            'fields': ('date_joined', 'last_login', 'created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',),
        }),
        (_('Soft Delete'), {
            'fields': ('is_deleted', 'deleted_at', 'deleted_by'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'full_name', 'role', 'unit'),
        }),
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if not request.GET.get('is_deleted__exact'):
            qs = qs.filter(is_deleted=False)
        return qs

    @admin.display(description=_('Role'))
    def role_badge(self, obj):
        colors = {
            'admin': '#ef4444',
            'manager': '#8b5cf6',
            'financial_operator': '#eab308',
            'administrative_operator': '#3b82f6',
            'warehouse_operator': '#22c55e',
        }
        color = colors.get(obj.role, '#6b7280')
        scope = _('all units') if obj.capabilities.can_access_all_units else (obj.unit or _('no unit'))
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:4px; font-size:11px; font-weight:600;">{}</span> <small>{}</small>',
            color, obj.get_role_display(), scope,
        )
