"""
Caching layer in front of the booking pipeline.

The cache owns at most one current CacheEntry and moves through
Empty → Refreshing → Fresh → Stale.  Reads of a fresh entry never touch
the network.  When a refresh is needed, every concurrent caller awaits
the same in-flight cycle, so RevSport sees one login and one listing
fetch no matter how many browsers ask at once.

If a cycle fails and an older entry exists, that entry is served again
with ``stale=True`` instead of raising.  Only a cycle with nothing to
fall back on propagates its error.

Usage::

    source = RevSportBookingSource(client, settings)
    cache = BookingCache(source, ttl_seconds=600)
    entry = await cache.get()                   # fills or reuses
    entry = await cache.get(force_refresh=True)
    await cache.close()                         # abandons an in-flight cycle
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

import httpx

from boatboard.errors import BoatboardError, RefreshError
from boatboard.models import BookingSnapshot, CacheEntry, CacheHealth, CacheMetadata, CacheState

logger = logging.getLogger(__name__)


class BookingSource(Protocol):
    """Anything that can produce one fresh booking snapshot."""

    async def load(self) -> BookingSnapshot:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingCache:
    """Single-flight, stale-on-error cache of the booking board."""

    def __init__(
        self,
        source: BookingSource,
        *,
        ttl_seconds: float = 600.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = source
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._refresh_task: asyncio.Task[CacheEntry] | None = None
        self._last_error: str | None = None

    # ── State ──────────────────────────────────────────────────────────

    @property
    def state(self) -> CacheState:
        if self._refresh_task is not None:
            return CacheState.REFRESHING
        if self._entry is None:
            return CacheState.EMPTY
        if self._entry.stale or self._is_expired(self._entry):
            return CacheState.STALE
        return CacheState.FRESH

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() > entry.metadata.expires_at

    def _is_fresh(self, entry: CacheEntry | None) -> bool:
        return entry is not None and not entry.stale and not self._is_expired(entry)

    # ── Read ───────────────────────────────────────────────────────────

    async def get(self, force_refresh: bool = False) -> CacheEntry:
        """Return the current entry, refreshing first if it is missing, old or forced."""
        if not force_refresh and self._is_fresh(self._entry):
            logger.debug("Returning cached data")
            return self._entry

        if self._refresh_task is None:
            logger.info(
                "Cache %s, fetching new data...",
                "refresh forced" if force_refresh else self.state.value,
            )
            self._refresh_task = asyncio.create_task(self._refresh(), name="booking-refresh")
            self._refresh_task.add_done_callback(self._clear_task)
        else:
            logger.debug("Refresh in progress, waiting...")

        # shield: one impatient caller must not cancel the shared cycle
        return await asyncio.shield(self._refresh_task)

    def _clear_task(self, task: asyncio.Task[CacheEntry]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    def health(self) -> CacheHealth:
        entry = self._entry
        if entry is None:
            return CacheHealth(
                is_cached=False, state=self.state, last_error=self._last_error,
            )
        age = self._clock() - entry.metadata.generated_at
        return CacheHealth(
            is_cached=True,
            state=self.state,
            expires_at=entry.metadata.expires_at,
            age_ms=int(age.total_seconds() * 1000),
            stale=entry.stale or self._is_expired(entry),
            last_error=self._last_error,
        )

    # ── Write ──────────────────────────────────────────────────────────

    async def _refresh(self) -> CacheEntry:
        started = self._clock()
        try:
            entry = self._build_entry(await self._source.load())
        except Exception as exc:
            expected = isinstance(exc, (BoatboardError, httpx.HTTPError))
            self._last_error = str(exc) if expected else repr(exc)
            if self._entry is None:
                logger.error("Refresh failed with no cached data to fall back on: %s", exc)
                if expected:
                    raise
                raise RefreshError(f"Refresh failed: {exc!r}") from exc
            if expected:
                logger.warning("Refresh failed, serving stale cache: %s", exc)
            else:
                logger.exception("Unexpected refresh failure, serving stale cache")
            if not self._entry.stale:
                self._entry = self._entry.model_copy(update={"stale": True})
            return self._entry

        self._entry = entry
        self._last_error = None
        logger.info(
            "Cache updated: %d boats, %d bookings in %.0fms (valid until %s)",
            entry.metadata.total_boats,
            entry.metadata.total_bookings,
            (self._clock() - started).total_seconds() * 1000,
            entry.metadata.expires_at.isoformat(),
        )
        return entry

    def _build_entry(self, snapshot: BookingSnapshot) -> CacheEntry:
        boats = snapshot.grouped.flatten()
        now = self._clock()
        return CacheEntry(
            boats=boats,
            grouped=snapshot.grouped,
            metadata=CacheMetadata(
                generated_at=snapshot.generated_at,
                window_start=snapshot.window_start,
                window_end=snapshot.window_end,
                total_boats=len(boats),
                total_bookings=sum(len(b.bookings) for b in boats),
                failed_assets=snapshot.failed_assets,
                skipped_bookings=snapshot.skipped_bookings,
                expires_at=now + self._ttl,
            ),
        )

    def clear(self) -> None:
        """Forget the current entry; the next get() starts from Empty."""
        self._entry = None
        self._last_error = None
        logger.info("Cache cleared")

    async def close(self) -> None:
        """Abandon an in-flight cycle. Nothing partial is ever published."""
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, BoatboardError, httpx.HTTPError):
                await task
        self._refresh_task = None
