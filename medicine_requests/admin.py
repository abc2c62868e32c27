"""
Medicine Requests — Django Admin Configuration

Read-only: request status only changes through the request service.

@file medicine_requests/admin.py
"""

from django.contrib import admin

from .models import MedicineRequest


@admin.register(MedicineRequest)
class MedicineRequestAdmin(admin.ModelAdmin):
    list_display = ('medicine', 'requester', 'donor', 'quantity', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('medicine__name', 'requester__email', 'donor__email')
    readonly_fields = (
        'id', 'medicine', 'requester', 'donor', 'quantity', 'message', 'status',
        'donor_response_message', 'responded_at', 'completed_at',
        'created_at', 'updated_at',
    )
    list_select_related = ('medicine', 'requester', 'donor')
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
