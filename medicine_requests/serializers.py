"""
Medicine Requests — Serializers

@file medicine_requests/serializers.py
"""

from rest_framework import serializers

from medicines.models import Medicine
from users.serializers import UserSummarySerializer

from .models import MedicineRequest


class MedicineSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Medicine
        fields = ['id', 'name', 'category', 'unit', 'expiry', 'pickup_address', 'image_url']
        read_only_fields = fields


class MedicineRequestReadSerializer(serializers.ModelSerializer):
    medicine = MedicineSummarySerializer(read_only=True)
    requester = UserSummarySerializer(read_only=True)
    donor = UserSummarySerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = MedicineRequest
        fields = [
            'id', 'medicine', 'requester', 'donor',
            'quantity', 'message', 'status', 'status_display',
            'donor_response_message', 'responded_at', 'completed_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class MedicineRequestCreateSerializer(serializers.Serializer):
    # Quantity bounds are checked by the request service against the live listing.
    medicine = serializers.UUIDField()
    quantity = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class DonorResponseSerializer(serializers.Serializer):
    response_message = serializers.CharField(
        required=False, allow_blank=True, default='', max_length=1000,
    )


class FailRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)
