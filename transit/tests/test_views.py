"""
Tests — Transit API endpoints.

@file transit/tests/test_views.py
"""

import pytest
from django.urls import reverse

from stock.services import StockService
from tests.factories import CDStockRecordFactory, SuperuserFactory, TransitRecordFactory, UnitFactory
from transit.services import TransitService


pytestmark = pytest.mark.django_db


def _dispatch_to(unit):
    cd_record = CDStockRecordFactory(quantity=10)
    return TransitService.dispatch(
        actor=SuperuserFactory(), item=cd_record.item, quantity=3,
        from_cd=cd_record.unit, to_unit=unit,
    )


class TestTransitList:

    def test_operator_sees_own_incoming_only(self, authenticated_client, user):
        TransitRecordFactory(to_unit=user.unit)
        TransitRecordFactory(to_unit=UnitFactory())
        resp = authenticated_client.get(reverse('api-v1:transit:transit-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 1
        assert 'progress' in resp.data['results'][0]
        assert 'eta' in resp.data['results'][0]


class TestDeliverEndpoint:

    def test_destination_operator_delivers(self, authenticated_client, user):
        record = _dispatch_to(user.unit)
        url = reverse('api-v1:transit:transit-deliver', kwargs={'pk': record.pk})
        resp = authenticated_client.post(url, {}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'delivered'
        assert resp.data['progress'] == 100
        assert StockService.get_quantity(record.item, user.unit) == 3

    def test_repeat_delivery_is_rejected(self, authenticated_client, user):
        record = _dispatch_to(user.unit)
        url = reverse('api-v1:transit:transit-deliver', kwargs={'pk': record.pk})
        authenticated_client.post(url, {}, format='json')
        resp = authenticated_client.post(url, {}, format='json')
        assert resp.status_code == 400
        assert StockService.get_quantity(record.item, user.unit) == 3

    def test_other_unit_gets_404(self, authenticated_client):
        record = _dispatch_to(UnitFactory())
        url = reverse('api-v1:transit:transit-deliver', kwargs={'pk': record.pk})
        resp = authenticated_client.post(url, {}, format='json')
        assert resp.status_code == 404
