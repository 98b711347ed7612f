"""
Booking board endpoints.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from boatboard.dependencies import get_cache
from boatboard.errors import BoatboardError
from boatboard.models import CacheEntry
from boatboard.services.cache import BookingCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["bookings"])


async def _serve(cache: BookingCache, force_refresh: bool) -> CacheEntry:
    try:
        return await cache.get(force_refresh=force_refresh)
    except (BoatboardError, httpx.HTTPError) as exc:
        logger.error("No booking data to serve: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Booking data unavailable: {exc}",
        ) from exc


@router.get(
    "/bookings",
    response_model=CacheEntry,
    operation_id="getBookings",
    summary="Grouped boats with this week's bookings",
)
async def get_bookings(
    refresh: bool = Query(False, description="Bypass the cache and refetch"),
    cache: BookingCache = Depends(get_cache),
) -> CacheEntry:
    return await _serve(cache, refresh)


@router.post(
    "/bookings/refresh",
    response_model=CacheEntry,
    operation_id="refreshBookings",
    summary="Force a refresh from RevSport",
)
async def refresh_bookings(cache: BookingCache = Depends(get_cache)) -> CacheEntry:
    return await _serve(cache, True)


@router.post(
    "/cache/clear",
    operation_id="clearCache",
    summary="Drop the cached booking data",
)
async def clear_cache(cache: BookingCache = Depends(get_cache)) -> dict[str, str]:
    cache.clear()
    return {"message": "Cache cleared"}
