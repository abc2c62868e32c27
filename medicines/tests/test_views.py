"""
Tests — Medicines API endpoints (views).

@file medicines/tests/test_views.py
"""

from datetime import timedelta
from unittest import mock

import pytest
from django.urls import reverse
from django.utils import timezone

from geography.services import Coordinates
from medicine_requests.models import MedicineRequest
from medicines.models import Medicine
from tests.factories import (
    MedicineFactory,
    MedicineRequestFactory,
    NoAddressUserFactory,
    UserFactory,
)


pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------------
# Own listings
# ---------------------------------------------------------------------------

class TestMedicineListCreate:

    def test_list_requires_auth(self, api_client):
        url = reverse('api-v1:medicines:medicine-list')
        resp = api_client.get(url)
        assert resp.status_code == 401

    def test_list_only_own_donations(self, authenticated_client, user):
        MedicineFactory.create_batch(2, donor=user)
        MedicineFactory()
        url = reverse('api-v1:medicines:medicine-list')
        resp = authenticated_client.get(url)
        assert resp.status_code == 200
        assert len(resp.data['results']) == 2

    def test_list_shows_ledger_view(self, authenticated_client, user):
        medicine = MedicineFactory(donor=user, quantity=10)
        MedicineRequestFactory(medicine=medicine, quantity=4)
        url = reverse('api-v1:medicines:medicine-list')
        resp = authenticated_client.get(url)
        row = resp.data['results'][0]
        assert row['remaining_quantity'] == 6
        assert row['display_status'] == Medicine.StatusChoices.REQUESTED
        assert row['display_status_label'] == 'Requested'

    def test_create(self, authenticated_client, user):
        url = reverse('api-v1:medicines:medicine-list')
        data = {
            'name': 'Paracetamol 500mg',
            'category': 'PAIN_RELIEF',
            'unit': 'TABLETS',
            'quantity': 30,
            'expiry': (timezone.localdate() + timedelta(days=120)).isoformat(),
            'condition': 'NEW',
        }
        resp = authenticated_client.post(url, data, format='json')
        assert resp.status_code == 201
        body = resp.data['data']
        assert body['original_quantity'] == 30
        assert body['pickup_address'] == user.full_address
        assert body['status'] == Medicine.StatusChoices.AVAILABLE

    def test_create_rejects_past_expiry(self, authenticated_client):
        url = reverse('api-v1:medicines:medicine-list')
        data = {
            'name': 'Old stock', 'quantity': 5,
            'expiry': (timezone.localdate() - timedelta(days=1)).isoformat(),
        }
        resp = authenticated_client.post(url, data, format='json')
        assert resp.status_code == 400
        assert 'expiry' in resp.data['errors']

    def test_create_ignores_ledger_fields(self, authenticated_client):
        url = reverse('api-v1:medicines:medicine-list')
        data = {
            'name': 'Ibuprofen', 'quantity': 5,
            'expiry': (timezone.localdate() + timedelta(days=30)).isoformat(),
            'status': 'DONATED', 'original_quantity': 99,
        }
        resp = authenticated_client.post(url, data, format='json')
        assert resp.status_code == 201
        assert resp.data['data']['status'] == Medicine.StatusChoices.AVAILABLE
        assert resp.data['data']['original_quantity'] == 5


class TestMedicineRetrieveDelete:

    def test_retrieve_any_listing(self, authenticated_client):
        medicine = MedicineFactory()
        url = reverse('api-v1:medicines:medicine-detail', args=[medicine.pk])
        resp = authenticated_client.get(url)
        assert resp.status_code == 200
        assert resp.data['name'] == medicine.name
        assert resp.data['remaining_quantity'] == medicine.quantity

    def test_delete_own(self, authenticated_client, user):
        medicine = MedicineFactory(donor=user)
        url = reverse('api-v1:medicines:medicine-detail', args=[medicine.pk])
        resp = authenticated_client.delete(url)
        assert resp.status_code == 204
        assert not Medicine.objects.filter(pk=medicine.pk).exists()

    def test_delete_someone_elses(self, authenticated_client):
        medicine = MedicineFactory()
        url = reverse('api-v1:medicines:medicine-detail', args=[medicine.pk])
        resp = authenticated_client.delete(url)
        assert resp.status_code == 403
        assert resp.data['code'] == 'UNAUTHORIZED_ACTOR'

    def test_delete_with_open_request(self, authenticated_client, user):
        medicine = MedicineFactory(donor=user)
        MedicineRequestFactory(medicine=medicine, status=MedicineRequest.StatusChoices.PENDING)
        url = reverse('api-v1:medicines:medicine-detail', args=[medicine.pk])
        resp = authenticated_client.delete(url)
        assert resp.status_code == 400
        assert resp.data['code'] == 'BUSINESS_RULE_VIOLATION'


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------

def _browse_url():
    return reverse('api-v1:medicines:medicine-browse')


class TestBrowse:

    def test_excludes_own_and_unlistable(self, authenticated_client, user):
        visible = MedicineFactory()
        MedicineFactory(donor=user)
        MedicineFactory(status=Medicine.StatusChoices.STOCK_FINISHED)
        MedicineFactory(expiry=timezone.localdate())

        with mock.patch('medicines.ranking.GeocodingService.geocode', return_value=None):
            resp = authenticated_client.get(_browse_url())

        assert resp.status_code == 200
        assert [row['id'] for row in resp.data['data']] == [str(visible.pk)]

    def test_without_address_has_no_distances(self, api_client):
        viewer = NoAddressUserFactory()
        api_client.force_authenticate(user=viewer)
        MedicineFactory.create_batch(2)

        with mock.patch('medicines.ranking.GeocodingService.geocode') as geocode:
            resp = api_client.get(_browse_url(), {'sort': 'distance', 'distance': '5'})

        geocode.assert_not_called()
        assert resp.status_code == 200
        assert len(resp.data['data']) == 2
        assert all(row['distance_km'] is None for row in resp.data['data'])
        assert all(row['distance_display'] == 'Distance unknown' for row in resp.data['data'])
        assert resp.data['meta']['location_known'] is False

    def test_distance_radius_and_any(self, authenticated_client, user):
        near = MedicineFactory(pickup_address='near')
        far = MedicineFactory(pickup_address='far')
        coords = {
            user.full_address: Coordinates(lat=12.9716, lng=77.5946),
            'near': Coordinates(lat=12.9784, lng=77.6408),
            'far': Coordinates(lat=12.2958, lng=76.6394),
        }

        with mock.patch('medicines.ranking.GeocodingService.geocode', side_effect=coords.get):
            default = authenticated_client.get(_browse_url())
            unlimited = authenticated_client.get(_browse_url(), {'distance': 'any'})

        assert [row['id'] for row in default.data['data']] == [str(near.pk)]
        assert default.data['meta']['max_distance_km'] == 50
        assert [row['id'] for row in unlimited.data['data']] == [str(near.pk), str(far.pk)]
        assert unlimited.data['meta']['max_distance_km'] is None

    def test_category_and_search_filters(self, authenticated_client):
        wanted = MedicineFactory(name='Metformin', category='DIABETES')
        MedicineFactory(name='Metformin XR', category='OTHER')
        MedicineFactory(name='Insulin', category='DIABETES')

        with mock.patch('medicines.ranking.GeocodingService.geocode', return_value=None):
            resp = authenticated_client.get(
                _browse_url(), {'category': 'DIABETES', 'search': 'metf'},
            )

        assert [row['id'] for row in resp.data['data']] == [str(wanted.pk)]

    def test_invalid_distance(self, authenticated_client):
        resp = authenticated_client.get(_browse_url(), {'distance': 'far'})
        assert resp.status_code == 400

    def test_invalid_sort(self, authenticated_client):
        resp = authenticated_client.get(_browse_url(), {'sort': 'random'})
        assert resp.status_code == 400

    def test_other_users_see_it(self, api_client):
        medicine = MedicineFactory()
        api_client.force_authenticate(user=UserFactory())
        with mock.patch('medicines.ranking.GeocodingService.geocode', return_value=None):
            resp = api_client.get(_browse_url(), {'sort': 'name'})
        assert str(medicine.pk) in [row['id'] for row in resp.data['data']]
