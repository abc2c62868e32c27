"""
Medicines — Views

Listing endpoints. Writes go through MedicineService; the browse action
hands the candidate set to the ListingRanker.

@file medicines/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Medicine
from .ranking import ListingRanker
from .serializers import (
    BrowseQuerySerializer,
    MedicineReadSerializer,
    MedicineWriteSerializer,
    RankedListingSerializer,
)
from .services import InventoryLedger, MedicineBrowseService, MedicineService


class MedicineViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    GET    /medicines/         — the current user's own listings
    POST   /medicines/         — list a new medicine for donation
    GET    /medicines/{id}/    — any listing
    DELETE /medicines/{id}/    — donor only, no open requests
    GET    /medicines/browse/  — other donors' listings ranked for the user
    """

    permission_classes = [IsAuthenticated]
    filterset_fields = ['status', 'category']
    search_fields = ['name', 'description', 'manufacturer']
    ordering_fields = ['created_at', 'expiry', 'name']
    ordering = ['-created_at']

    def get_queryset(self):
        qs = Medicine.objects.select_related('donor')
        if self.action == 'list':
            qs = qs.filter(donor=self.request.user)
        return InventoryLedger.with_reservations(qs)

    def get_serializer_class(self):
        if self.action == 'create':
            return MedicineWriteSerializer
        return MedicineReadSerializer

    def create(self, request, *args, **kwargs):
        serializer = MedicineWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        medicine = MedicineService.create_medicine(
            donor=request.user, **serializer.validated_data,
        )
        return Response(
            {'success': True, 'data': MedicineReadSerializer(medicine).data},
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):
        MedicineService.delete_medicine(medicine_id=kwargs['pk'], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path='browse')
    def browse(self, request):
        query = BrowseQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        candidates = MedicineBrowseService.candidates(
            user=request.user,
            category=params.get('category'),
            search=params.get('search'),
        )
        address = request.user.full_address if request.user.has_usable_address else None
        ranked = ListingRanker.rank(
            candidates,
            requester_address=address,
            sort=params['sort'],
            max_distance_km=params['distance'],
        )
        return Response({
            'success': True,
            'data': RankedListingSerializer(ranked, many=True).data,
            'meta': {
                'count': len(ranked),
                'sort': params['sort'],
                'max_distance_km': params['distance'],
                'location_known': address is not None,
            },
        })
