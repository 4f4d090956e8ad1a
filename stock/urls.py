"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import CDStockViewSet, MovementViewSet, UnitStockViewSet

app_name = 'stock'

router = DefaultRouter()
router.register('unit-stock', UnitStockViewSet, basename='unit-stock')
router.register('cd-stock', CDStockViewSet, basename='cd-stock')
router.register('movements', MovementViewSet, basename='movement')

urlpatterns = [
    path('', include(router.urls)),
]
