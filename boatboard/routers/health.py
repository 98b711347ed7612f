"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from boatboard.dependencies import get_cache
from boatboard.models import HealthResponse
from boatboard.services.cache import BookingCache

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health(cache: BookingCache = Depends(get_cache)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        timestamp=datetime.now(timezone.utc),
        cache=cache.health(),
    )
