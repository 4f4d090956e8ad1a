"""
Transit — URL Configuration

@file transit/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import TransitRecordViewSet

app_name = 'transit'

router = DefaultRouter()
router.register('', TransitRecordViewSet, basename='transit')

urlpatterns = [
    path('', include(router.urls)),
]
