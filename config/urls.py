"""
Depotrack — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

admin.site.site_header = 'Depotrack Administration'
admin.site.site_title = 'Depotrack'
admin.site.index_title = 'Multi-site inventory ledger'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """Depotrack API v1 — endpoint directory."""
    return Response({
        'auth': {
            'login': reverse('api-v1:auth:login', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
            'logout': reverse('api-v1:auth:logout', request=request, format=format),
            'me': reverse('api-v1:auth:me', request=request, format=format),
        },
        'users': reverse('api-v1:users:user-list', request=request, format=format),
        'catalog': {
            'units': reverse('api-v1:catalog:unit-list', request=request, format=format),
            'items': reverse('api-v1:catalog:item-list', request=request, format=format),
            'suppliers': reverse('api-v1:catalog:supplier-list', request=request, format=format),
        },
        'stock': {
            'unit_stock': reverse('api-v1:stock:unit-stock-list', request=request, format=format),
            'cd_stock': reverse('api-v1:stock:cd-stock-list', request=request, format=format),
            'movements': reverse('api-v1:stock:movement-list', request=request, format=format),
        },
        'transit': reverse('api-v1:transit:transit-list', request=request, format=format),
        'requests': reverse('api-v1:requisitions:request-list', request=request, format=format),
        'purchases': {
            'list': reverse('api-v1:purchases:purchase-list', request=request, format=format),
            'quotations': reverse('api-v1:purchases:quotation-list', request=request, format=format),
        },
        'audit_logs': reverse('api-v1:core:audit-log-list', request=request, format=format),
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include('users.urls', namespace='auth')),
    path('users/', include('users.urls_users', namespace='users')),
    path('catalog/', include('catalog.urls', namespace='catalog')),
    path('stock/', include('stock.urls', namespace='stock')),
    path('transit/', include('transit.urls', namespace='transit')),
    path('requests/', include('requisitions.urls', namespace='requisitions')),
    path('purchases/', include('purchases.urls', namespace='purchases')),
    path('audit-logs/', include('core.urls', namespace='core')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
