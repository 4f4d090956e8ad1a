"""
Tests — Stock API endpoints: unit stock, CD stock, movements.

@file stock/tests/test_views.py
"""

import pytest
from django.urls import reverse

from stock.models import Movement
from tests.factories import (
    CDStockRecordFactory,
    CDUnitFactory,
    ItemFactory,
    StockRecordFactory,
    UnitFactory,
)


pytestmark = pytest.mark.django_db


class TestUnitStock:

    def test_list_requires_auth(self, api_client):
        resp = api_client.get(reverse('api-v1:stock:unit-stock-list'))
        assert resp.status_code == 401

    def test_operator_sees_only_own_unit(self, authenticated_client, user):
        StockRecordFactory(unit=user.unit)
        StockRecordFactory(unit=UnitFactory())
        resp = authenticated_client.get(reverse('api-v1:stock:unit-stock-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 1
        assert str(resp.data['results'][0]['unit']) == str(user.unit.pk)

    def test_create_merges(self, authenticated_client, user):
        record = StockRecordFactory(unit=user.unit, quantity=4)
        resp = authenticated_client.post(
            reverse('api-v1:stock:unit-stock-list'),
            {'item': str(record.item.pk), 'unit': str(user.unit.pk), 'quantity': 6},
            format='json',
        )
        assert resp.status_code == 201
        assert resp.data['quantity'] == 10
        assert str(resp.data['id']) == str(record.pk)

    def test_create_rejects_cd_unit(self, admin_client):
        resp = admin_client.post(
            reverse('api-v1:stock:unit-stock-list'),
            {'item': str(ItemFactory().pk), 'unit': str(CDUnitFactory().pk), 'quantity': 1},
            format='json',
        )
        assert resp.status_code == 400

    def test_create_negative_quantity_invalid(self, authenticated_client, user):
        resp = authenticated_client.post(
            reverse('api-v1:stock:unit-stock-list'),
            {'item': str(ItemFactory().pk), 'unit': str(user.unit.pk), 'quantity': -1},
            format='json',
        )
        assert resp.status_code == 400

    def test_adjust(self, authenticated_client, user):
        record = StockRecordFactory(unit=user.unit, quantity=10)
        resp = authenticated_client.post(
            reverse('api-v1:stock:unit-stock-adjust', kwargs={'pk': record.pk}),
            {'quantity': 7, 'notes': 'cycle count'},
            format='json',
        )
        assert resp.status_code == 200
        assert resp.data['quantity'] == 7
        assert Movement.objects.filter(item=record.item, from_unit=user.unit).count() == 1

    def test_update_settings_keeps_quantity(self, authenticated_client, user):
        record = StockRecordFactory(unit=user.unit, quantity=10)
        resp = authenticated_client.patch(
            reverse('api-v1:stock:unit-stock-detail', kwargs={'pk': record.pk}),
            {'min_quantity': 12},
            format='json',
        )
        assert resp.status_code == 200
        assert resp.data['quantity'] == 10
        assert resp.data['status'] == 'low'


class TestCDStock:

    def test_unit_operator_forbidden(self, authenticated_client):
        resp = authenticated_client.get(reverse('api-v1:stock:cd-stock-list'))
        assert resp.status_code == 403

    def test_warehouse_lists_cd_stock(self, warehouse_client, cd_unit):
        CDStockRecordFactory(unit=cd_unit)
        resp = warehouse_client.get(reverse('api-v1:stock:cd-stock-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 1
        assert 'unit_price' in resp.data['results'][0]


class TestMovements:

    def test_transfer_endpoint(self, admin_client):
        source = StockRecordFactory(quantity=5)
        target = UnitFactory()
        resp = admin_client.post(
            reverse('api-v1:stock:movement-transfer'),
            {
                'item': str(source.item.pk),
                'from_unit': str(source.unit.pk),
                'to_unit': str(target.pk),
                'quantity': 2,
            },
            format='json',
        )
        assert resp.status_code == 201
        assert resp.data['movement_type'] == 'transfer'

    def test_transfer_insufficient_is_409(self, admin_client):
        source = StockRecordFactory(quantity=1)
        resp = admin_client.post(
            reverse('api-v1:stock:movement-transfer'),
            {
                'item': str(source.item.pk),
                'from_unit': str(source.unit.pk),
                'to_unit': str(UnitFactory().pk),
                'quantity': 2,
            },
            format='json',
        )
        assert resp.status_code == 409

    def test_movements_are_read_only(self, admin_client):
        resp = admin_client.post(reverse('api-v1:stock:movement-list'), {}, format='json')
        assert resp.status_code == 405
