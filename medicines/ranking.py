"""
Medicines — Listing Ranker

Distance-aware ordering of browse candidates. The requester's address is
geocoded once; every listing's pickup address is geocoded on a bounded
thread pool, each lookup waited on for at most GEOCODING_TIMEOUT_SECONDS.
A listing whose lookup fails or times out keeps an unknown distance
instead of failing the browse.

@file medicines/ranking.py
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass

from django.conf import settings
from django.db import close_old_connections

from geography.services import Coordinates, GeocodingService, format_distance

from .models import Medicine

logger = logging.getLogger('medshare')

SORT_DISTANCE = 'distance'
SORT_NEWEST = 'newest'
SORT_OLDEST = 'oldest'
SORT_EXPIRY = 'expiry'
SORT_NAME = 'name'
SORT_CHOICES = (SORT_DISTANCE, SORT_NEWEST, SORT_OLDEST, SORT_EXPIRY, SORT_NAME)


@dataclass
class RankedListing:
    medicine: Medicine
    distance_km: float | None = None

    @property
    def distance_display(self) -> str:
        return format_distance(self.distance_km)


def _geocode_in_worker(address: str) -> Coordinates | None:
    # Worker threads may touch the cache backend's DB connection.
    try:
        return GeocodingService.geocode(address)
    finally:
        close_old_connections()


class ListingRanker:

    @staticmethod
    def _resolve_pickups(listings: list[RankedListing], origin: Coordinates) -> None:
        timeout = settings.GEOCODING_TIMEOUT_SECONDS
        addresses = {item.medicine.pickup_address for item in listings if item.medicine.pickup_address}
        if not addresses:
            return

        workers = max(1, min(settings.GEOCODING_MAX_WORKERS, len(addresses)))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='geocode')
        try:
            futures = {addr: executor.submit(_geocode_in_worker, addr) for addr in addresses}
            resolved: dict[str, Coordinates | None] = {}
            for addr, future in futures.items():
                try:
                    resolved[addr] = future.result(timeout=timeout)
                except FutureTimeout:
                    logger.warning('Geocoding timed out for pickup address %r.', addr)
                    resolved[addr] = None
                except Exception:
                    logger.exception('Geocoding crashed for pickup address %r.', addr)
                    resolved[addr] = None
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        for item in listings:
            dest = resolved.get(item.medicine.pickup_address)
            item.distance_km = GeocodingService.distance_km(origin, dest)

    @staticmethod
    def _sort(listings: list[RankedListing], sort: str) -> list[RankedListing]:
        if sort == SORT_DISTANCE:
            return sorted(
                listings,
                key=lambda r: (r.distance_km is None, r.distance_km or 0.0),
            )
        if sort == SORT_OLDEST:
            return sorted(listings, key=lambda r: r.medicine.created_at)
        if sort == SORT_EXPIRY:
            return sorted(listings, key=lambda r: r.medicine.expiry)
        if sort == SORT_NAME:
            return sorted(listings, key=lambda r: r.medicine.name.casefold())
        return sorted(listings, key=lambda r: r.medicine.created_at, reverse=True)

    @classmethod
    def rank(
        cls,
        candidates,
        *,
        requester_address: str | None,
        sort: str = SORT_NEWEST,
        max_distance_km: float | None = None,
        limit: int | None = None,
    ) -> list[RankedListing]:
        """
        Rank candidate listings for a requester.

        max_distance_km=None means no radius limit. Without a usable
        requester address (or when it cannot be geocoded) no distances
        are computed, the radius is ignored and distance sorting falls
        back to newest first.
        """
        limit = settings.BROWSE_PAGE_SIZE if limit is None else limit
        listings = [RankedListing(medicine=m) for m in candidates]

        origin = GeocodingService.geocode(requester_address) if requester_address else None
        if origin is None:
            if sort == SORT_DISTANCE:
                sort = SORT_NEWEST
        else:
            cls._resolve_pickups(listings, origin)
            if max_distance_km is not None:
                listings = [
                    r for r in listings
                    if r.distance_km is not None and r.distance_km <= max_distance_km
                ]

        return cls._sort(listings, sort)[:limit]
