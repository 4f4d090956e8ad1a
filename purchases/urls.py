"""
Purchases — URL Configuration

@file purchases/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import PurchaseViewSet, QuotationViewSet, UnitBudgetViewSet

app_name = 'purchases'

router = DefaultRouter()
router.register('quotations', QuotationViewSet, basename='quotation')
router.register('budgets', UnitBudgetViewSet, basename='budget')
router.register('', PurchaseViewSet, basename='purchase')

urlpatterns = [
    path('', include(router.urls)),
]
