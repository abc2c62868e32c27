"""
Medicines — Serializers

Read serializers expose the ledger's view of a listing (remaining units,
display status); write serializers only accept donor-editable fields.

@file medicines/serializers.py
"""

from django.conf import settings
from django.utils import timezone
from rest_framework import serializers

from users.serializers import UserSummarySerializer

from .models import Medicine
from .ranking import SORT_CHOICES, SORT_DISTANCE
from .services import InventoryLedger

NO_DISTANCE_LIMIT = 'any'


class MedicineReadSerializer(serializers.ModelSerializer):
    donor = UserSummarySerializer(read_only=True)
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    unit_display = serializers.CharField(source='get_unit_display', read_only=True)
    condition_display = serializers.CharField(source='get_condition_display', read_only=True)

    class Meta:
        model = Medicine
        fields = [
            'id', 'donor', 'name',
            'category', 'category_display',
            'unit', 'unit_display',
            'quantity', 'original_quantity', 'expiry',
            'condition', 'condition_display',
            'description', 'manufacturer', 'image_url', 'pickup_address',
            'status', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        remaining, display_status = InventoryLedger.display_snapshot(instance)
        data['remaining_quantity'] = remaining
        data['display_status'] = display_status
        data['display_status_label'] = Medicine.StatusChoices(display_status).label
        return data


class MedicineWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Medicine
        fields = [
            'name', 'category', 'unit', 'quantity', 'expiry',
            'condition', 'description', 'manufacturer', 'image_url',
        ]

    def validate_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError('Quantity must be at least 1.')
        return value

    def validate_expiry(self, value):
        if value <= timezone.localdate():
            raise serializers.ValidationError('Expiry date must be in the future.')
        return value


class RankedListingSerializer(serializers.Serializer):
    """A browse result: the listing plus its distance from the requester."""

    def to_representation(self, instance):
        data = MedicineReadSerializer(instance.medicine, context=self.context).data
        data['distance_km'] = (
            round(instance.distance_km, 2) if instance.distance_km is not None else None
        )
        data['distance_display'] = instance.distance_display
        return data


class BrowseQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(
        choices=Medicine.CategoryChoices.choices, required=False, allow_blank=True,
    )
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    sort = serializers.ChoiceField(choices=SORT_CHOICES, default=SORT_DISTANCE)
    distance = serializers.CharField(required=False, default=None, allow_null=True)

    def validate_distance(self, value):
        """'any' lifts the radius limit; blank falls back to the default radius."""
        if value is None or value == '':
            return float(settings.BROWSE_DEFAULT_RADIUS_KM)
        if value.lower() == NO_DISTANCE_LIMIT:
            return None
        try:
            km = float(value)
        except ValueError:
            raise serializers.ValidationError(f'Use a number of kilometres or "{NO_DISTANCE_LIMIT}".')
        if km <= 0:
            raise serializers.ValidationError('Distance must be positive.')
        return km
