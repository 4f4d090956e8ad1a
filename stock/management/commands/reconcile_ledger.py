"""
Stock — Management Command: reconcile_ledger

Replays the Movement journal against stored stock balances and prints
every mismatch. Read-only.

Usage::

    python manage.py reconcile_ledger
    python manage.py reconcile_ledger --unit <uuid>

Exits with status 1 when mismatches are found.

@file stock/management/commands/reconcile_ledger.py
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.models import Unit
from stock.reconciliation import ReconciliationService


class Command(BaseCommand):
    help = 'Compare stored stock balances with the Movement journal.'

    def add_arguments(self, parser):
        parser.add_argument('--unit', type=str, help='Only reconcile this unit (UUID).')

    def handle(self, *args, **options):
        if options.get('unit'):
            try:
                unit = Unit.objects.get(pk=options['unit'], is_deleted=False)
            except (Unit.DoesNotExist, ValueError):
                raise CommandError(f'Unit {options["unit"]} not found.')
            mismatches = ReconciliationService.replay(unit)
        else:
            mismatches = ReconciliationService.replay_all()

        for m in mismatches:
            self.stdout.write(
                f'  unit={m.unit_id} item={m.item_id} stored={m.stored} expected={m.expected}'
            )

        if mismatches:
            raise CommandError(f'{len(mismatches)} mismatches found.', returncode=1)
        self.stdout.write(self.style.SUCCESS('Ledger is consistent.'))
