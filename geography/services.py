"""
Geography — Geocoding & Distance Service

Resolves free-text addresses to coordinates through an external provider
(Google Maps, Mapbox or HERE, whichever is configured first), computes
great-circle distances with the Haversine formula and formats distances
for display.

@file geography/services.py
"""

import logging
import math
from dataclasses import dataclass
from urllib.parse import quote

import requests
from django.conf import settings
from django.core.cache import cache

from core.exceptions import GeocodeUnavailable

logger = logging.getLogger('medshare')

EARTH_RADIUS_KM = 6371.0
UNKNOWN_DISTANCE = 'Distance unknown'

GOOGLE_GEOCODE_URL = 'https://maps.googleapis.com/maps/api/geocode/json'
MAPBOX_GEOCODE_URL = 'https://api.mapbox.com/geocoding/v5/mapbox.places/{query}.json'
HERE_GEOCODE_URL = 'https://geocode.search.hereapi.com/v1/geocode'


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 coordinate pair in decimal degrees."""
    lat: float
    lng: float


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in kilometres between two points."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def format_distance(distance_km: float | None) -> str:
    if distance_km is None:
        return UNKNOWN_DISTANCE
    if distance_km < 1:
        return f'{round(distance_km * 1000)} meters'
    if distance_km < 10:
        return f'{distance_km:.1f} km'
    return f'{round(distance_km)} km'


# ---------------------------------------------------------------------------
# Providers: each returns Coordinates, None for "no match", or raises
# GeocodeUnavailable when the provider itself could not be reached.
# ---------------------------------------------------------------------------

def _get_json(url: str, params: dict) -> dict:
    try:
        resp = requests.get(url, params=params, timeout=settings.GEOCODING_TIMEOUT_SECONDS)
        resp.raise_for_status()
        return resp.json()
    except (requests.RequestException, ValueError) as e:
        raise GeocodeUnavailable(str(e)) from e


def _geocode_google(address: str, api_key: str) -> Coordinates | None:
    data = _get_json(GOOGLE_GEOCODE_URL, {'address': address, 'key': api_key})
    results = data.get('results') or []
    if not results:
        return None
    location = results[0]['geometry']['location']
    return Coordinates(lat=float(location['lat']), lng=float(location['lng']))


def _geocode_mapbox(address: str, api_key: str) -> Coordinates | None:
    url = MAPBOX_GEOCODE_URL.format(query=quote(address, safe=''))
    data = _get_json(url, {'access_token': api_key, 'limit': 1})
    features = data.get('features') or []
    if not features:
        return None
    lng, lat = features[0]['center'][:2]
    return Coordinates(lat=float(lat), lng=float(lng))


def _geocode_here(address: str, api_key: str) -> Coordinates | None:
    data = _get_json(HERE_GEOCODE_URL, {'q': address, 'apiKey': api_key})
    items = data.get('items') or []
    if not items:
        return None
    position = items[0]['position']
    return Coordinates(lat=float(position['lat']), lng=float(position['lng']))


PROVIDERS = (
    ('GOOGLE_MAPS_API_KEY', _geocode_google),
    ('MAPBOX_API_KEY', _geocode_mapbox),
    ('HERE_API_KEY', _geocode_here),
)


class GeocodingService:
    """Address → coordinates. Never raises: failures come back as None."""

    @staticmethod
    def _cache_key(address: str) -> str:
        return 'geocode:' + ' '.join(address.lower().split())

    @classmethod
    def geocode(cls, address: str | None) -> Coordinates | None:
        if not address or not address.strip():
            return None

        key = cls._cache_key(address)
        cached = cache.get(key)
        if cached is not None:
            return Coordinates(*cached)

        for setting_name, provider in PROVIDERS:
            api_key = getattr(settings, setting_name, '')
            if not api_key:
                continue
            try:
                coords = provider(address, api_key)
            except GeocodeUnavailable as e:
                logger.warning('Geocoding via %s failed for %r: %s', provider.__name__, address, e)
                return None
            except (KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning('Unexpected geocoding payload from %s: %s', provider.__name__, e)
                return None
            if coords is not None:
                cache.set(key, (coords.lat, coords.lng), settings.GEOCODING_CACHE_SECONDS)
            return coords

        logger.warning('No geocoding provider configured; distance unavailable.')
        return None

    @staticmethod
    def distance_km(origin: Coordinates | None, destination: Coordinates | None) -> float | None:
        if origin is None or destination is None:
            return None
        return haversine_km(origin, destination)
