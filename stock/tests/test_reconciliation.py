"""
Tests — Ledger reconciliation: journal replay vs stored balances,
including quantity still in transit; management command and task.

@file stock/tests/test_reconciliation.py
"""

import pytest
from django.core.management import CommandError, call_command

from stock.models import StockRecord
from stock.reconciliation import ReconciliationService
from stock.services import StockService
from stock.tasks import reconcile_ledger_task
from tests.factories import CDUnitFactory, ItemFactory, SuperuserFactory, UnitFactory
from transit.services import TransitService


pytestmark = pytest.mark.django_db


@pytest.fixture
def admin():
    return SuperuserFactory()


class TestReplay:

    def test_consistent_after_service_operations(self, admin):
        item, unit, other = ItemFactory(), UnitFactory(), UnitFactory()
        StockService.add_stock(actor=admin, item=item, unit=unit, quantity=20)
        StockService.adjust_stock(actor=admin, item=item, unit=unit, quantity=15)
        StockService.transfer_stock(actor=admin, item=item, from_unit=unit, to_unit=other, quantity=5)
        assert ReconciliationService.replay(unit) == []
        assert ReconciliationService.replay(other) == []

    def test_open_transit_is_accounted_for(self, admin):
        item, cd, unit = ItemFactory(), CDUnitFactory(), UnitFactory()
        StockService.add_stock(actor=admin, item=item, unit=cd, quantity=10)
        TransitService.dispatch(actor=admin, item=item, quantity=4, from_cd=cd, to_unit=unit)
        assert ReconciliationService.replay(cd) == []
        assert ReconciliationService.replay(unit) == []

    def test_consistent_after_delivery(self, admin):
        item, cd, unit = ItemFactory(), CDUnitFactory(), UnitFactory()
        StockService.add_stock(actor=admin, item=item, unit=cd, quantity=10)
        record = TransitService.dispatch(actor=admin, item=item, quantity=4, from_cd=cd, to_unit=unit)
        TransitService.deliver(actor=admin, transit_id=record.pk)
        assert ReconciliationService.replay_all() == []

    def test_direct_write_is_reported(self, admin):
        item, unit = ItemFactory(), UnitFactory()
        record = StockService.add_stock(actor=admin, item=item, unit=unit, quantity=10)
        StockRecord.objects.filter(pk=record.pk).update(quantity=13)
        mismatches = ReconciliationService.replay(unit)
        assert len(mismatches) == 1
        assert mismatches[0].stored == 13
        assert mismatches[0].expected == 10
        assert mismatches[0].difference == 3


class TestEntryPoints:

    def test_command_succeeds_when_consistent(self, admin):
        StockService.add_stock(actor=admin, item=ItemFactory(), unit=UnitFactory(), quantity=3)
        call_command('reconcile_ledger')

    def test_command_fails_on_mismatch(self, admin):
        record = StockService.add_stock(actor=admin, item=ItemFactory(), unit=UnitFactory(), quantity=3)
        StockRecord.objects.filter(pk=record.pk).update(quantity=0)
        with pytest.raises(CommandError):
            call_command('reconcile_ledger', unit=str(record.unit_id))

    def test_command_unknown_unit(self):
        with pytest.raises(CommandError):
            call_command('reconcile_ledger', unit='00000000-0000-0000-0000-000000000000')

    def test_task_reports_mismatches(self, admin):
        record = StockService.add_stock(actor=admin, item=ItemFactory(), unit=UnitFactory(), quantity=3)
        StockRecord.objects.filter(pk=record.pk).update(quantity=1)
        result = reconcile_ledger_task()
        assert result['mismatch_count'] == 1
        assert result['mismatches'][0]['difference'] == -2
