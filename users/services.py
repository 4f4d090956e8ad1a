"""
Users — Service Layer

User account management and auth event logging. No HTTP context:
services receive plain Python arguments and raise typed exceptions.
Create/update audit rows come from users.signals.

@file users/services.py
"""

import logging

from django.db import transaction

from core.exceptions import BusinessRuleViolation, DuplicateResourceError, ResourceNotFoundError
from core.services import AuditService

from .capabilities import capabilities_for
from .context import ActorContext, as_actor
from .models import User

logger = logging.getLogger('depotrack')


def _check_role_unit(role: str, unit) -> None:
    if not capabilities_for(role).can_access_all_units and unit is None:
        raise BusinessRuleViolation(detail=f'Role "{role}" requires a home unit.')


class UserService:
    """CRUD for user accounts."""

    @staticmethod
    @transaction.atomic
    def create_user(
        *,
        email: str,
        password: str | None = None,
        actor=None,
        **extra_fields,
    ) -> User:
        if User.objects.filter(email__iexact=email).exists():
            raise DuplicateResourceError(detail=f'Email {email} already registered.')

        role = extra_fields.get('role', User.RoleChoices.ADMINISTRATIVE_OPERATOR)
        _check_role_unit(role, extra_fields.get('unit'))

        user = User(email=User.objects.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.created_by = getattr(actor, 'user', actor)
        user._current_user = user.created_by
        user.save()
        logger.info('User %s created with role %s', user.pk, user.role)
        return user

    @staticmethod
    @transaction.atomic
    def update_user(*, user_id, actor=None, **fields) -> User:
        try:
            user = User.objects.select_for_update().get(pk=user_id, is_deleted=False)
        except User.DoesNotExist:
            raise ResourceNotFoundError()

        for field, value in fields.items():
            if hasattr(user, field) and field not in ('id', 'pk', 'password'):
                setattr(user, field, value)

        _check_role_unit(user.role, user.unit)

        user.updated_by = getattr(actor, 'user', actor)
        user._current_user = user.updated_by
        user.save()
        return user

    @staticmethod
    @transaction.atomic
    def deactivate_user(*, user_id, actor: ActorContext) -> User:
        actor = as_actor(actor)
        if str(actor.user.pk) == str(user_id):
            raise BusinessRuleViolation(detail='You cannot deactivate your own account.')
        try:
            user = User.objects.select_for_update().get(pk=user_id, is_deleted=False)
        except User.DoesNotExist:
            raise ResourceNotFoundError()
        user.is_active = False
        user._current_user = actor.user
        user.save(update_fields=['is_active', 'updated_at'])
        user.soft_delete(user=actor.user)
        return user


class AuthService:

    @staticmethod
    def log_auth_event(*, action: str, user=None, ip_address=None, user_agent=''):
        AuditService.log(
            actor=user,
            action=action,
            model_name='User',
            object_id=str(user.pk) if user else '',
            ip_address=ip_address,
            user_agent=user_agent,
        )
