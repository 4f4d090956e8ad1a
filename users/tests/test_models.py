"""
Users — Model Tests

Tests for the User model, its manager and the role capability matrix.

@file users/tests/test_models.py
"""

import pytest

from tests.factories import ManagerFactory, SuperuserFactory, UserFactory, WarehouseOperatorFactory
from users.capabilities import NO_CAPABILITIES, Role, capabilities_for
from users.context import ActorContext
from users.models import User


@pytest.mark.django_db
class TestUserModel:
    def test_create_user(self):
        user = User.objects.create_user(email='Op@Example.COM', password='Test2026!!')
        assert user.email == 'Op@example.com'
        assert user.check_password('Test2026!!')
        assert user.role == User.RoleChoices.ADMINISTRATIVE_OPERATOR
        assert user.is_staff is False

    def test_email_required(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email='', password='x')

    def test_superuser_creation(self):
        user = User.objects.create_superuser(email='root@example.com', password='Super2026!!')
        assert user.is_staff is True
        assert user.is_superuser is True
        assert user.role == Role.ADMIN

    def test_full_name_fallback_to_email(self):
        user = UserFactory(full_name='')
        assert user.get_full_name() == user.email
        assert str(user) == user.email

    def test_short_name(self):
        user = UserFactory(full_name='Ana Souza')
        assert user.get_short_name() == 'Ana'

    def test_uuid_pk(self):
        user = UserFactory()
        assert len(str(user.pk)) == 36

    def test_active_manager_skips_deleted(self):
        kept, gone = UserFactory(), UserFactory()
        gone.soft_delete()
        assert list(User.objects.active().filter(pk__in=[kept.pk, gone.pk])) == [kept]


@pytest.mark.django_db
class TestCapabilities:
    def test_superuser_flag_grants_admin(self):
        user = SuperuserFactory(role=Role.ADMINISTRATIVE_OPERATOR)
        assert user.capabilities == capabilities_for(Role.ADMIN)

    def test_unknown_role_has_nothing(self):
        assert capabilities_for('visitor') == NO_CAPABILITIES

    def test_warehouse_is_global_without_movements(self):
        caps = WarehouseOperatorFactory().capabilities
        assert caps.can_access_all_units
        assert caps.can_access_cd_stock
        assert not caps.can_access_movements
        assert not caps.can_delete

    def test_manager_endorses_but_does_not_review(self):
        caps = ManagerFactory().capabilities
        assert caps.can_endorse_requests
        assert not caps.can_review_requests
        assert not caps.can_receive_purchases

    def test_actor_unit_scope(self):
        operator = UserFactory()
        actor = ActorContext.from_user(operator)
        assert not actor.is_global
        assert actor.can_act_for_unit(operator.unit_id)
        assert actor.can_act_for_unit(str(operator.unit_id))
        assert not actor.can_act_for_unit(UserFactory().unit_id)
        assert ActorContext.from_user(ManagerFactory()).can_act_for_unit(operator.unit_id)
