"""FastAPI application for the boat booking board."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from boatboard.config import load_settings
from boatboard.routers import bookings, health
from boatboard.services.background import BookingRefresher
from boatboard.services.cache import BookingCache
from boatboard.services.pipeline import RevSportBookingSource
from boatboard.services.revsport.client import RevSportClient

logger = logging.getLogger(__name__)


def create_app(cache: BookingCache | None = None) -> FastAPI:
    """
    Build the app.  Pass *cache* to serve a ready-made cache (tests);
    otherwise the lifespan wires up the RevSport pipeline from the
    environment and tears it down on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if cache is not None:
            app.state.cache = cache
            yield
            return

        settings = load_settings()
        client = RevSportClient(settings)
        booking_cache = BookingCache(
            RevSportBookingSource(client, settings),
            ttl_seconds=settings.cache_ttl_seconds,
        )
        refresher: BookingRefresher | None = None
        if settings.refresh_interval_seconds > 0:
            refresher = BookingRefresher(
                booking_cache,
                interval=settings.refresh_interval_seconds,
                warm_on_start=True,
            )
            await refresher.start()

        app.state.cache = booking_cache
        logger.info("Booking board ready (%s)", settings.base_url)
        try:
            yield
        finally:
            if refresher is not None:
                await refresher.stop()
            await booking_cache.close()
            await client.close()

    app = FastAPI(
        title="Boat Booking Board API",
        description="Read-only mirror of the club's RevSport boat bookings",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(bookings.router)
    return app


app = create_app()
