"""
Requisitions — Application Configuration
"""

from django.apps import AppConfig


class RequisitionsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'requisitions'
    verbose_name = 'Supply Requests'
