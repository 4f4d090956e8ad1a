"""
Users — Service Tests

@file users/tests/test_services.py
"""

import pytest

from core.exceptions import BusinessRuleViolation, DuplicateResourceError, ResourceNotFoundError
from core.models import AuditLog
from tests.factories import SuperuserFactory, UnitFactory, UserFactory
from users.capabilities import Role
from users.services import UserService


@pytest.mark.django_db
class TestUserService:
    def test_create_user(self):
        admin = SuperuserFactory()
        unit = UnitFactory()
        user = UserService.create_user(
            email='new@depotrack.test', password='Secure2026!!', actor=admin,
            role=Role.ADMINISTRATIVE_OPERATOR, unit=unit, full_name='New Operator',
        )
        assert user.pk is not None
        assert user.created_by == admin
        assert user.check_password('Secure2026!!')
        log = AuditLog.objects.get(model_name='User', object_id=str(user.pk), action='CREATE')
        assert log.actor == admin

    def test_duplicate_email_case_insensitive(self):
        UserFactory(email='dup@depotrack.test')
        with pytest.raises(DuplicateResourceError):
            UserService.create_user(email='DUP@depotrack.test', password='Secure2026!!', unit=UnitFactory())

    def test_unit_role_needs_unit(self):
        with pytest.raises(BusinessRuleViolation):
            UserService.create_user(email='nounit@depotrack.test', role=Role.FINANCIAL_OPERATOR)

    def test_global_role_without_unit(self):
        user = UserService.create_user(email='mgr@depotrack.test', role=Role.MANAGER)
        assert user.unit is None

    def test_update_user(self):
        user = UserFactory(full_name='Old')
        updated = UserService.update_user(user_id=user.pk, full_name='New')
        assert updated.full_name == 'New'

    def test_update_ignores_password(self):
        user = UserFactory()
        UserService.update_user(user_id=user.pk, password='plain')
        user.refresh_from_db()
        assert user.check_password('TestPass2026!')

    def test_update_missing_user(self):
        with pytest.raises(ResourceNotFoundError):
            UserService.update_user(user_id='00000000-0000-0000-0000-000000000000', full_name='x')

    def test_deactivate(self):
        admin, user = SuperuserFactory(), UserFactory()
        UserService.deactivate_user(user_id=user.pk, actor=admin)
        user.refresh_from_db()
        assert user.is_active is False
        assert user.is_deleted is True

    def test_cannot_deactivate_self(self):
        admin = SuperuserFactory()
        with pytest.raises(BusinessRuleViolation):
            UserService.deactivate_user(user_id=admin.pk, actor=admin)
