"""
MedShare — Root URL Configuration

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

admin.site.site_header = 'MedShare Administration'
admin.site.site_title = 'MedShare'
admin.site.index_title = 'Medicine Donation Marketplace'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """MedShare API v1 — endpoint directory."""
    return Response({
        'auth': {
            'login': reverse('api-v1:auth:login', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
            'me': reverse('api-v1:auth:me', request=request, format=format),
        },
        'medicines': {
            'list': reverse('api-v1:medicines:medicine-list', request=request, format=format),
            'browse': reverse('api-v1:medicines:medicine-browse', request=request, format=format),
        },
        'requests': reverse('api-v1:requests:request-list', request=request, format=format),
        'notifications': {
            'list': reverse('api-v1:notifications:notification-list', request=request, format=format),
            'unread_count': reverse(
                'api-v1:notifications:notification-unread-count', request=request, format=format,
            ),
        },
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include('users.urls', namespace='auth')),
    path('medicines/', include('medicines.urls', namespace='medicines')),
    path('requests/', include('medicine_requests.urls', namespace='requests')),
    path('notifications/', include('notifications.urls', namespace='notifications')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
