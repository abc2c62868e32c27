"""
Medicine Requests — Views

Thin wrappers over MedicineRequestService. Every action returns the
updated request; failures surface through the standard error envelope.

@file medicine_requests/views.py
"""

from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.pagination import RequestHistoryPagination

from .models import MedicineRequest
from .serializers import (
    DonorResponseSerializer,
    FailRequestSerializer,
    MedicineRequestCreateSerializer,
    MedicineRequestReadSerializer,
)
from .services import MedicineRequestService

ROLE_REQUESTER = 'requester'
ROLE_DONOR = 'donor'


class MedicineRequestViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Requests the current user made or received.

    ?role=requester|donor narrows the list to one side; ?status filters
    by request status.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = RequestHistoryPagination
    filterset_fields = ['status']
    ordering_fields = ['created_at', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        user = self.request.user
        role = self.request.query_params.get('role')
        if role == ROLE_REQUESTER:
            scope = Q(requester=user)
        elif role == ROLE_DONOR:
            scope = Q(donor=user)
        else:
            scope = Q(requester=user) | Q(donor=user)
        return (
            MedicineRequest.objects
            .filter(scope)
            .select_related('medicine', 'requester', 'donor')
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return MedicineRequestCreateSerializer
        return MedicineRequestReadSerializer

    def create(self, request, *args, **kwargs):
        ser = MedicineRequestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        medicine_request = MedicineRequestService.create_request(
            medicine_id=ser.validated_data['medicine'],
            requester=request.user,
            quantity=ser.validated_data['quantity'],
            message=ser.validated_data['message'],
        )
        return Response(
            {'success': True, 'data': MedicineRequestReadSerializer(medicine_request).data},
            status=status.HTTP_201_CREATED,
        )

    def _respond(self, medicine_request):
        return Response({
            'success': True,
            'data': MedicineRequestReadSerializer(medicine_request).data,
        })

    @action(detail=True, methods=['post'], url_path='accept')
    def accept(self, request, pk=None):
        ser = DonorResponseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._respond(MedicineRequestService.accept_request(
            request_id=pk, actor=request.user,
            response_message=ser.validated_data['response_message'],
        ))

    @action(detail=True, methods=['post'], url_path='reject')
    def reject(self, request, pk=None):
        ser = DonorResponseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._respond(MedicineRequestService.reject_request(
            request_id=pk, actor=request.user,
            response_message=ser.validated_data['response_message'],
        ))

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        return self._respond(MedicineRequestService.cancel_request(
            request_id=pk, actor=request.user,
        ))

    @action(detail=True, methods=['post'], url_path='complete')
    def complete(self, request, pk=None):
        return self._respond(MedicineRequestService.complete_request(
            request_id=pk, actor=request.user,
        ))

    @action(detail=True, methods=['post'], url_path='fail')
    def fail(self, request, pk=None):
        ser = FailRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._respond(MedicineRequestService.fail_request(
            request_id=pk, actor=request.user,
            reason=ser.validated_data['reason'],
        ))
