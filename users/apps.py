"""
Users — Application Configuration

@file users/apps.py
"""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'users'
    verbose_name = 'Users & Roles'

    def ready(self):
        import users.signals  # noqa: F401
