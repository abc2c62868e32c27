"""
Medicines — Django Admin Configuration

Listing admin with expiry color coding and the requests placed against
each listing. Quantity and status are read-only here: the inventory
ledger owns them, and the "recompute status" action asks it to
re-derive the status.

@file medicines/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from medicine_requests.models import MedicineRequest

from .models import Medicine
from .services import InventoryLedger

STATUS_COLORS = {
    'AVAILABLE': '#22c55e',
    'REQUESTED': '#3b82f6',
    'STOCK_FINISHED': '#eab308',
    'DONATED': '#8b5cf6',
    'EXPIRED': '#ef4444',
}


def _badge(color, label):
    return format_html(
        '<span style="background:{};color:#fff;padding:2px 8px;'
        'border-radius:4px;font-size:11px;font-weight:600;">{}</span>',
        color, label,
    )


class MedicineRequestInline(admin.TabularInline):
    model = MedicineRequest
    fk_name = 'medicine'
    extra = 0
    can_delete = False
    fields = ('requester', 'quantity', 'status', 'responded_at', 'completed_at', 'created_at')
    readonly_fields = fields
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.action(description=_('Recompute status from live requests'))
def recompute_status(modeladmin, request, queryset):
    for medicine_id in queryset.values_list('pk', flat=True):
        InventoryLedger.refresh_status(medicine_id=medicine_id)
    modeladmin.message_user(request, f'{queryset.count()} listing(s) recomputed.')


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'donor', 'category', 'quantity', 'original_quantity',
        'expiry', 'expiry_badge', 'status_badge', 'created_at',
    )
    list_filter = ('status', 'category', 'condition', 'unit')
    search_fields = ('name', 'manufacturer', 'description', 'donor__email')
    readonly_fields = (
        'id', 'quantity', 'original_quantity', 'status', 'version',
        'pickup_address', 'expiry_badge', 'created_at', 'updated_at',
    )
    raw_id_fields = ('donor',)
    date_hierarchy = 'created_at'
    list_select_related = ('donor',)
    list_per_page = 30
    ordering = ('-created_at',)
    inlines = [MedicineRequestInline]
    actions = [recompute_status]

    def has_add_permission(self, request):
        # Listings are created through MedicineService (pickup snapshot, audit).
        return False

    fieldsets = (
        (_('Listing'), {
            'fields': ('id', 'donor', 'name', 'category', 'manufacturer', 'description', 'image_url'),
        }),
        (_('Stock'), {
            'fields': ('unit', 'quantity', 'original_quantity', 'condition', 'expiry', 'expiry_badge'),
        }),
        (_('Pickup'), {
            'fields': ('pickup_address',),
        }),
        (_('Ledger'), {
            'fields': ('status', 'version', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(description=_('Status'))
    def status_badge(self, obj):
        return _badge(STATUS_COLORS.get(obj.status, '#6b7280'), obj.get_status_display())

    @admin.display(description=_('Expiry'))
    def expiry_badge(self, obj):
        if not obj.pk:
            return '—'
        days = obj.days_to_expiry
        if days <= 0:
            return _badge('#dc2626', f'EXPIRED ({abs(days)}d ago)')
        if days <= 30:
            return _badge('#f97316', f'{days}d left')
        return _badge('#22c55e', f'{days}d left')
