"""
Periodic cache refresher.

Forces a new refresh cycle every ``interval`` seconds so that a display
reading /api/bookings almost never waits on RevSport.  The first cycle
can run at startup; if RevSport is down then, the app still starts and
the next read or tick tries again.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import httpx

from boatboard.errors import BoatboardError
from boatboard.services.cache import BookingCache

logger = logging.getLogger(__name__)


class BookingRefresher:
    """Keeps the booking cache warm in a background task."""

    def __init__(
        self,
        cache: BookingCache,
        *,
        interval: float,
        warm_on_start: bool = False,
        name: str = "booking-refresher",
    ) -> None:
        self._cache = cache
        self._interval = interval
        self._warm_on_start = warm_on_start
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._warm_on_start:
            await self._warm()
        self._task = asyncio.create_task(self._loop(), name=self._name)
        logger.info("%s started (every %.0fs)", self._name, self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("%s stopped", self._name)

    async def _warm(self) -> None:
        try:
            await self._cache.get()
        except (BoatboardError, httpx.HTTPError) as exc:
            logger.warning("Initial booking fetch failed, starting empty: %s", exc)

    async def _tick(self) -> None:
        entry = await self._cache.get(force_refresh=True)
        if entry.stale:
            logger.warning("Background refresh served stale data")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._tick()
            except Exception:
                logger.exception("%s tick failed, retrying in %.0fs", self._name, self._interval)
