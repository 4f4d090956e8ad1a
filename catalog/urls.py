"""
Catalog — URL Configuration

@file catalog/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ItemViewSet, SupplierViewSet, UnitViewSet

app_name = 'catalog'

router = DefaultRouter()
router.register('units', UnitViewSet, basename='unit')
router.register('items', ItemViewSet, basename='item')
router.register('suppliers', SupplierViewSet, basename='supplier')

urlpatterns = [
    path('', include(router.urls)),
]
