"""
Tests — Supply request API endpoints.

@file requisitions/tests/test_views.py
"""

import pytest
from django.urls import reverse

from requisitions.models import SupplyRequest
from tests.factories import (
    CDStockRecordFactory,
    ItemFactory,
    SupplyRequestFactory,
    SupplyRequestItemFactory,
    UnitFactory,
)


pytestmark = pytest.mark.django_db


def _url(name, pk=None):
    kwargs = {'pk': pk} if pk else None
    return reverse(f'api-v1:requisitions:request-{name}', kwargs=kwargs)


class TestCreateAndList:

    def test_create(self, authenticated_client, user, cd_unit):
        item = ItemFactory()
        resp = authenticated_client.post(
            _url('list'),
            {
                'requesting_unit': str(user.unit.pk),
                'cd_unit': str(cd_unit.pk),
                'items': [{'item': str(item.pk), 'quantity': 3}],
                'priority': 'high',
            },
            format='json',
        )
        assert resp.status_code == 201
        assert resp.data['status'] == 'requested'
        assert resp.data['priority'] == 'high'
        assert len(resp.data['items']) == 1
        assert resp.data['items'][0]['quantity_requested'] == 3

    def test_create_rejects_non_cd_target(self, authenticated_client, user):
        resp = authenticated_client.post(
            _url('list'),
            {
                'requesting_unit': str(user.unit.pk),
                'cd_unit': str(UnitFactory().pk),
                'items': [{'item': str(ItemFactory().pk), 'quantity': 3}],
            },
            format='json',
        )
        assert resp.status_code == 400

    def test_operator_sees_only_own_unit(self, authenticated_client, user):
        SupplyRequestFactory(requesting_unit=user.unit)
        SupplyRequestFactory()
        resp = authenticated_client.get(_url('list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 1

    def test_warehouse_sees_all(self, warehouse_client):
        SupplyRequestFactory()
        SupplyRequestFactory()
        resp = warehouse_client.get(_url('list'))
        assert len(resp.data['results']) == 2


class TestWorkflowActions:

    def test_review_then_prepare_then_dispatch(self, warehouse_client, cd_unit):
        request = SupplyRequestFactory(cd_unit=cd_unit)
        line = SupplyRequestItemFactory(request=request, quantity_requested=4)
        CDStockRecordFactory(item=line.item, unit=cd_unit, quantity=10)

        resp = warehouse_client.post(_url('review', request.pk), {'expected_status': 'requested'}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'approved'
        assert resp.data['items'][0]['quantity_approved'] == 4

        resp = warehouse_client.post(_url('prepare', request.pk), {}, format='json')
        assert resp.data['status'] == 'preparing'

        resp = warehouse_client.post(_url('dispatch', request.pk), {}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'sent'
        assert resp.data['items'][0]['quantity_sent'] == 4

    def test_stale_expected_status_is_409(self, warehouse_client, cd_unit):
        request = SupplyRequestFactory(cd_unit=cd_unit, status=SupplyRequest.StatusChoices.REVIEWING)
        SupplyRequestItemFactory(request=request)
        resp = warehouse_client.post(_url('review', request.pk), {'expected_status': 'requested'}, format='json')
        assert resp.status_code == 409

    def test_operator_review_is_403(self, authenticated_client, user):
        request = SupplyRequestFactory(requesting_unit=user.unit)
        SupplyRequestItemFactory(request=request)
        resp = authenticated_client.post(_url('review', request.pk), {}, format='json')
        assert resp.status_code == 403

    def test_invalid_transition_is_400(self, warehouse_client):
        request = SupplyRequestFactory(status=SupplyRequest.StatusChoices.RECEIVED)
        resp = warehouse_client.post(_url('prepare', request.pk), {}, format='json')
        assert resp.status_code == 400

    def test_reject_requires_reason(self, warehouse_client):
        request = SupplyRequestFactory()
        resp = warehouse_client.post(_url('reject', request.pk), {}, format='json')
        assert resp.status_code == 400

    def test_reject(self, warehouse_client):
        request = SupplyRequestFactory()
        resp = warehouse_client.post(_url('reject', request.pk), {'reason': 'duplicate'}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'rejected'
        assert resp.data['rejection_reason'] == 'duplicate'

    def test_cancel_by_requester(self, authenticated_client, user):
        request = SupplyRequestFactory(requesting_unit=user.unit)
        resp = authenticated_client.post(_url('cancel', request.pk), {'reason': 'no longer needed'}, format='json')
        assert resp.status_code == 200
        assert resp.data['status'] == 'cancelled'

    def test_update_items_while_requested(self, authenticated_client, user):
        request = SupplyRequestFactory(requesting_unit=user.unit)
        line = SupplyRequestItemFactory(request=request, quantity_requested=2)
        resp = authenticated_client.patch(
            _url('detail', request.pk),
            {'items': [{'item': str(line.item.pk), 'quantity': 9}], 'notes': 'more'},
            format='json',
        )
        assert resp.status_code == 200
        assert resp.data['items'][0]['quantity_requested'] == 9
        assert resp.data['notes'] == 'more'

    def test_other_unit_request_is_404(self, authenticated_client):
        request = SupplyRequestFactory()
        resp = authenticated_client.post(_url('cancel', request.pk), {}, format='json')
        assert resp.status_code == 404
