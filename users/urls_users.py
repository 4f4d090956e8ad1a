"""
Users — User Management URL Configuration

User administration ViewSet, routed under /api/v1/users/ and scoped
to the actor's unit for non-global roles.

@file users/urls_users.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import UserViewSet

app_name = 'users'

router = DefaultRouter()
router.register('', UserViewSet, basename='user')

urlpatterns = [
    path('', include(router.urls)),
]
