"""
Users — View Tests

Tests for the auth endpoints and the user management ViewSet.

@file users/tests/test_views.py
"""

import pytest
from django.urls import reverse

from core.models import AuditLog
from tests.factories import ManagerFactory, UnitFactory, UserFactory


@pytest.mark.django_db
class TestLoginView:
    def _url(self):
        return reverse('api-v1:auth:login')

    def test_login_success(self, api_client):
        user = UserFactory(email='login@depotrack.test')
        resp = api_client.post(
            self._url(), {'email': 'login@depotrack.test', 'password': 'TestPass2026!'}, format='json',
        )
        assert resp.status_code == 200
        assert resp.data['success'] is True
        assert 'access' in resp.data['data']
        assert resp.data['data']['user']['role'] == user.role
        assert AuditLog.objects.filter(action='LOGIN', object_id=str(user.pk)).exists()

    def test_login_wrong_password(self, api_client):
        user = UserFactory(email='wrong@depotrack.test')
        resp = api_client.post(
            self._url(), {'email': 'wrong@depotrack.test', 'password': 'nope'}, format='json',
        )
        assert resp.status_code == 400
        assert resp.data['code'] == 'AUTHENTICATION_FAILED'
        assert AuditLog.objects.filter(action='LOGIN_FAILED', object_id=str(user.pk)).exists()

    def test_login_inactive(self, api_client):
        UserFactory(email='off@depotrack.test', is_active=False)
        resp = api_client.post(
            self._url(), {'email': 'off@depotrack.test', 'password': 'TestPass2026!'}, format='json',
        )
        assert resp.status_code == 400


@pytest.mark.django_db
class TestMeView:
    def test_me(self, authenticated_client, user):
        resp = authenticated_client.get(reverse('api-v1:auth:me'))
        assert resp.status_code == 200
        assert resp.data['data']['email'] == user.email
        assert resp.data['data']['capabilities']['can_create_requests'] is True

    def test_me_requires_auth(self, api_client):
        resp = api_client.get(reverse('api-v1:auth:me'))
        assert resp.status_code == 401


@pytest.mark.django_db
class TestUserViewSet:
    def test_operator_cannot_manage_users(self, authenticated_client):
        resp = authenticated_client.get(reverse('api-v1:users:user-list'))
        assert resp.status_code == 403

    def test_admin_creates_user(self, admin_client):
        unit = UnitFactory()
        resp = admin_client.post(
            reverse('api-v1:users:user-list'),
            {
                'email': 'created@depotrack.test',
                'password': 'Created2026!!',
                'role': 'administrative_operator',
                'unit': str(unit.pk),
            },
            format='json',
        )
        assert resp.status_code == 201
        assert resp.data['email'] == 'created@depotrack.test'

    def test_create_unit_role_without_unit(self, admin_client):
        resp = admin_client.post(
            reverse('api-v1:users:user-list'),
            {'email': 'lost@depotrack.test', 'password': 'Created2026!!', 'role': 'financial_operator'},
            format='json',
        )
        assert resp.status_code == 400

    def test_delete_deactivates(self, admin_client):
        user = UserFactory()
        resp = admin_client.delete(reverse('api-v1:users:user-detail', kwargs={'pk': user.pk}))
        assert resp.status_code == 204
        user.refresh_from_db()
        assert user.is_active is False

    def test_manager_lists_all(self, api_client):
        UserFactory()
        manager = ManagerFactory()
        api_client.force_authenticate(user=manager)
        resp = api_client.get(reverse('api-v1:users:user-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) >= 2
