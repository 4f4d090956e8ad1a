"""
Depotrack — Celery Application

Workers and beat pick up tasks from every installed app. The ledger
reconciliation schedule lives in settings.CELERY_BEAT_SCHEDULE.

@file config/celery.py
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('depotrack')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
