"""
Depotrack — Root conftest for pytest

Shared fixtures available to all test modules.

@file conftest.py
"""

import pytest
from rest_framework.test import APIClient

from tests.factories import (
    CDUnitFactory,
    ManagerFactory,
    SuperuserFactory,
    UnitFactory,
    UserFactory,
    WarehouseOperatorFactory,
)


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture
def unit(db):
    return UnitFactory()


@pytest.fixture
def cd_unit(db):
    return CDUnitFactory()


@pytest.fixture
def user(db, unit):
    """Administrative operator of ``unit``; password TestPass2026!"""
    return UserFactory(unit=unit)


@pytest.fixture
def admin_user(db):
    """Superuser with default password TestPass2026!"""
    return SuperuserFactory()


@pytest.fixture
def manager(db):
    return ManagerFactory()


@pytest.fixture
def warehouse_user(db, cd_unit):
    return WarehouseOperatorFactory(unit=cd_unit)


@pytest.fixture
def authenticated_client(api_client, user):
    """API client authenticated as the unit operator."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    """API client authenticated as a superuser."""
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def warehouse_client(api_client, warehouse_user):
    api_client.force_authenticate(user=warehouse_user)
    return api_client
