"""
Catalog — View Tests

@file catalog/tests/test_views.py
"""

import pytest
from django.urls import reverse

from catalog.models import Item
from tests.factories import ItemFactory, StockRecordFactory, SupplierFactory, UnitFactory


pytestmark = pytest.mark.django_db


class TestItems:

    def test_any_active_user_can_read(self, authenticated_client):
        ItemFactory()
        resp = authenticated_client.get(reverse('api-v1:catalog:item-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 1

    def test_operator_cannot_write(self, authenticated_client):
        resp = authenticated_client.post(
            reverse('api-v1:catalog:item-list'), {'code': 'X-1', 'name': 'Thing'}, format='json',
        )
        assert resp.status_code == 403

    def test_warehouse_creates_with_normalised_code(self, warehouse_client, warehouse_user):
        resp = warehouse_client.post(
            reverse('api-v1:catalog:item-list'), {'code': ' glv-01 ', 'name': 'Gloves'}, format='json',
        )
        assert resp.status_code == 201
        item = Item.objects.get(pk=resp.data['id'])
        assert item.code == 'GLV-01'
        assert item.created_by == warehouse_user

    def test_duplicate_code_case_insensitive(self, admin_client):
        ItemFactory(code='GLV-01')
        resp = admin_client.post(
            reverse('api-v1:catalog:item-list'), {'code': 'glv-01', 'name': 'Gloves'}, format='json',
        )
        assert resp.status_code == 400

    def test_delete_is_soft(self, admin_client):
        item = ItemFactory()
        resp = admin_client.delete(reverse('api-v1:catalog:item-detail', kwargs={'pk': item.pk}))
        assert resp.status_code == 204
        item.refresh_from_db()
        assert item.is_deleted
        resp = admin_client.get(reverse('api-v1:catalog:item-list'))
        assert resp.data['results'] == []


class TestUnits:

    def test_cannot_flip_cd_flag_with_stock(self, admin_client):
        unit = UnitFactory()
        StockRecordFactory(unit=unit)
        resp = admin_client.patch(
            reverse('api-v1:catalog:unit-detail', kwargs={'pk': unit.pk}), {'is_cd': True}, format='json',
        )
        assert resp.status_code == 400

    def test_flip_cd_flag_when_empty(self, admin_client):
        unit = UnitFactory()
        resp = admin_client.patch(
            reverse('api-v1:catalog:unit-detail', kwargs={'pk': unit.pk}), {'is_cd': True}, format='json',
        )
        assert resp.status_code == 200
        assert resp.data['is_cd'] is True


class TestSuppliers:

    def test_search(self, admin_client):
        SupplierFactory(name='Alpha Medical')
        SupplierFactory(name='Beta Office')
        resp = admin_client.get(reverse('api-v1:catalog:supplier-list'), {'search': 'alpha'})
        assert [row['name'] for row in resp.data['results']] == ['Alpha Medical']
