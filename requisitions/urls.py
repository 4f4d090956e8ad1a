"""
Requisitions — URL Configuration

@file requisitions/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import SupplyRequestViewSet

app_name = 'requisitions'

router = DefaultRouter()
router.register('', SupplyRequestViewSet, basename='request')

urlpatterns = [
    path('', include(router.urls)),
]
