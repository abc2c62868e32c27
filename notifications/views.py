"""
Notifications — Views

The authenticated user's notification feed.

@file notifications/views.py
"""

from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationReadSerializer
from .services import NotificationService


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    GET  /notifications/              — own notifications, newest first
    GET  /notifications/unread-count/ — number of unread notifications
    POST /notifications/{id}/read/    — mark one as read
    POST /notifications/read-all/     — mark every unread one as read
    """

    permission_classes = [IsAuthenticated]
    serializer_class = NotificationReadSerializer
    filterset_fields = ['type', 'read', 'priority']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            Notification.objects
            .filter(recipient=self.request.user)
            .select_related('sender')
        )

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return Response({
            'success': True,
            'data': {'unread': NotificationService.unread_count(request.user)},
        })

    @action(detail=True, methods=['post'], url_path='read')
    def read(self, request, pk=None):
        notification = NotificationService.mark_read(notification_id=pk, user=request.user)
        return Response({
            'success': True,
            'data': NotificationReadSerializer(notification).data,
        })

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        updated = NotificationService.mark_all_read(user=request.user)
        return Response({'success': True, 'data': {'updated': updated}})
