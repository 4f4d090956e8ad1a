"""
Catalog — Management Command: load_catalog

Loads units, items and suppliers from a JSON file.

Usage::

    python manage.py load_catalog --file catalog.json

Expected shape::

    {
      "units": [{"name": "CD Central", "is_cd": true, "address": "..."}],
      "items": [{"code": "PAP-A4", "name": "A4 paper", "unit_measure": "pct"}],
      "suppliers": [{"name": "ACME", "cnpj": "00.000.000/0001-00"}]
    }

Idempotent: safe to re-run (uses update_or_create on the natural key).

@file catalog/management/commands/load_catalog.py
"""

import json
import logging
from collections import Counter

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from catalog.models import Item, Supplier, Unit

logger = logging.getLogger('depotrack')

NATURAL_KEYS = (
    ('units', Unit, 'name'),
    ('items', Item, 'code'),
    ('suppliers', Supplier, 'name'),
)


class Command(BaseCommand):
    help = 'Load units, items and suppliers from a JSON file.'

    def add_arguments(self, parser):
        parser.add_argument('--file', type=str, required=True, help='Path to the JSON file.')

    def handle(self, *args, **options):
        try:
            with open(options['file'], 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f'Cannot read {options["file"]}: {exc}')

        counter = Counter()
        with transaction.atomic():
            for section, model, key in NATURAL_KEYS:
                for row in data.get(section, []):
                    row = dict(row)
                    if key not in row:
                        raise CommandError(f'{section} entry without "{key}": {row}')
                    lookup = {key: row.pop(key)}
                    _, created = model.objects.update_or_create(defaults=row, **lookup)
                    counter[(section, created)] += 1

        for section, _, _ in NATURAL_KEYS:
            self.stdout.write(
                f'  {section}: {counter[(section, True)]} created, {counter[(section, False)]} updated'
            )
        logger.info('load_catalog finished: %s', dict(counter))
        self.stdout.write(self.style.SUCCESS('Catalog loaded.'))
