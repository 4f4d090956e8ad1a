"""
Users — Actor Context

The identity every service call acts on behalf of: the user, the role
they act under, their home unit and the capabilities of that role.
Views build it from request.user and pass it down explicitly.

@file users/context.py
"""

from dataclasses import dataclass
from uuid import UUID

from rest_framework.exceptions import PermissionDenied

from .capabilities import Capabilities, Role, capabilities_for


@dataclass(frozen=True)
class ActorContext:
    user: object
    role: str
    unit_id: UUID | None
    capabilities: Capabilities

    @classmethod
    def from_user(cls, user) -> 'ActorContext':
        role = Role.ADMIN if getattr(user, 'is_superuser', False) else getattr(user, 'role', None)
        return cls(
            user=user,
            role=role,
            unit_id=getattr(user, 'unit_id', None),
            capabilities=capabilities_for(role),
        )

    @property
    def is_global(self) -> bool:
        return self.capabilities.can_access_all_units

    def can(self, capability: str) -> bool:
        return self.capabilities.has(capability)

    def can_act_for_unit(self, unit_id) -> bool:
        if self.is_global:
            return True
        return self.unit_id is not None and str(self.unit_id) == str(unit_id)

    def require(self, capability: str, message: str | None = None) -> None:
        if not self.can(capability):
            raise PermissionDenied(detail=message or f'Role "{self.role}" lacks {capability}.')

    def require_unit(self, unit_id, message: str | None = None) -> None:
        if not self.can_act_for_unit(unit_id):
            raise PermissionDenied(detail=message or 'You may only act on your own unit.')


def as_actor(actor) -> ActorContext:
    """Accept a User or an ActorContext; always return an ActorContext."""
    if isinstance(actor, ActorContext):
        return actor
    return ActorContext.from_user(actor)
