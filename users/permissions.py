"""
Users — DRF Permission Classes

Capability-based permission checks for ViewSets, plus the queryset
scoping used for roles that only see their own unit.

@file users/permissions.py
"""

from django.db.models import Q
from rest_framework.permissions import SAFE_METHODS, BasePermission

from .context import ActorContext


class IsActiveUser(BasePermission):
    """Requires the user to be authenticated, active and not soft-deleted."""

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and user.is_active
            and not getattr(user, 'is_deleted', False)
        )


class HasCapability(BasePermission):
    """
    Checks the capabilities listed on the view. Any one listed capability
    is enough.

    Usage::

        class MyView(APIView):
            permission_classes = [IsActiveUser, HasCapability]
            required_capabilities = ['can_access_inventory']
            write_capabilities = ['can_update']   # optional, unsafe methods only
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        actor = ActorContext.from_user(user)
        required = getattr(view, 'required_capabilities', [])
        if required and not any(actor.can(c) for c in required):
            return False
        if request.method not in SAFE_METHODS:
            write = getattr(view, 'write_capabilities', [])
            if write and not any(actor.can(c) for c in write):
                return False
        return True


class CanManageUsers(BasePermission):

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return ActorContext.from_user(user).can('can_manage_users')


def scope_to_actor_units(queryset, actor: ActorContext, *unit_fields: str):
    """
    Restrict a queryset to rows whose unit fields point at the actor's unit.
    Global roles see everything; a unit-less non-global actor sees nothing.
    """
    if actor.is_global:
        return queryset
    if actor.unit_id is None:
        return queryset.none()
    condition = Q()
    for field in unit_fields:
        condition |= Q(**{field: actor.unit_id})
    return queryset.filter(condition)
