"""
Notifications — Django Admin Configuration

@file notifications/admin.py
"""

from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'recipient', 'priority', 'read', 'created_at')
    list_filter = ('type', 'priority', 'read')
    search_fields = ('title', 'message', 'recipient__email')
    raw_id_fields = ('recipient', 'sender', 'related_medicine', 'related_request')
    readonly_fields = ('created_at', 'read_at')
    list_select_related = ('recipient',)
    ordering = ('-created_at',)
