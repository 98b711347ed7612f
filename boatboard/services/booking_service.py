"""
Booking fetcher – pulls each boat's calendar from the RevSport JSON feed.

RevSport rate-limits hard, so boats are fetched in small concurrent
batches with a pause in between.  A boat whose fetch fails gets an
explicit error in its result; the other boats are unaffected.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from time import perf_counter
from typing import Any

from boatboard.errors import AuthError, FetchError, TransportError
from boatboard.models import Asset, Availability, Booking, BoatWithBookings
from boatboard.services.revsport.api_models import RawBooking
from boatboard.services.revsport.client import RevSportClient, Session
from boatboard.services.revsport.config import CALENDAR_PATH, RevSportSettings

logger = logging.getLogger(__name__)

_BOOKED_BY_RE = re.compile(r"^Booked by\s*", re.IGNORECASE)
_CUSTOM_SESSION = "custom"


@dataclass
class AssetFetchResult:
    """Bookings for one boat, or the reason there are none."""

    asset_id: int
    bookings: list[Booking] = field(default_factory=list)
    skipped: int = 0
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BookingService:
    def __init__(
        self,
        client: RevSportClient,
        settings: RevSportSettings,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settings = settings
        self._sleep = sleep

    async def fetch_bookings(
        self,
        session: Session,
        assets: Sequence[Asset],
        window_start: date,
        window_days: int | None = None,
    ) -> dict[int, AssetFetchResult]:
        """Fetch ``[window_start, window_start + window_days)`` for every asset."""
        days = window_days or self._settings.window_days
        batch_size = self._settings.batch_size
        delay = self._settings.batch_delay_seconds
        params = self.window_params(window_start, days)

        total_batches = -(-len(assets) // batch_size)
        logger.info("Fetching bookings for %d assets...", len(assets))
        started = perf_counter()

        results: dict[int, AssetFetchResult] = {}
        for offset in range(0, len(assets), batch_size):
            batch = assets[offset:offset + batch_size]
            logger.debug(
                "Processing batch %d/%d (%d boats)",
                offset // batch_size + 1,
                total_batches,
                len(batch),
            )
            batch_results = await asyncio.gather(
                *(self._fetch_one(session, asset.id, params) for asset in batch)
            )
            for result in batch_results:
                results[result.asset_id] = result

            if offset + batch_size < len(assets) and delay > 0:
                logger.debug("Waiting %.2fs before next batch...", delay)
                await self._sleep(delay)

        failed = sum(1 for r in results.values() if not r.ok)
        booked = sum(len(r.bookings) for r in results.values())
        logger.info(
            "Fetched %d bookings from %d assets in %.0fms (%d failed, %d batches of %d)",
            booked,
            len(assets),
            (perf_counter() - started) * 1000,
            failed,
            total_batches,
            batch_size,
        )
        return results

    def window_params(self, window_start: date, days: int) -> dict[str, str]:
        """Midnight-to-midnight bounds in the club's timezone, e.g. 2025-10-25T00:00:00+11:00."""
        zone = self._settings.zone
        start = datetime.combine(window_start, time(0), tzinfo=zone)
        end = datetime.combine(window_start + timedelta(days=days), time(0), tzinfo=zone)
        return {"start": start.isoformat(), "end": end.isoformat()}

    async def _fetch_one(
        self, session: Session, asset_id: int, params: dict[str, str],
    ) -> AssetFetchResult:
        path = CALENDAR_PATH.format(asset_id=asset_id)
        try:
            resp = await self._client.request(session, "GET", path, params=params)
            payload = resp.json()
        except (TransportError, AuthError) as exc:
            logger.warning("Failed to fetch bookings for asset %d: %s", asset_id, exc)
            return AssetFetchResult(asset_id, error=FetchError(asset_id, str(exc)))
        except ValueError as exc:
            logger.warning("Asset %d calendar is not JSON: %s", asset_id, exc)
            return AssetFetchResult(asset_id, error=FetchError(asset_id, "malformed payload"))

        if not isinstance(payload, list):
            logger.warning("Asset %d calendar is not a list", asset_id)
            return AssetFetchResult(asset_id, error=FetchError(asset_id, "malformed payload"))

        bookings, skipped = self.parse_bookings(asset_id, payload)
        logger.debug("Asset %d: %d bookings (%d skipped)", asset_id, len(bookings), skipped)
        return AssetFetchResult(asset_id, bookings=bookings, skipped=skipped)

    def parse_bookings(self, asset_id: int, records: list[Any]) -> tuple[list[Booking], int]:
        """Turn raw calendar events into bookings; bad records are counted, not fatal."""
        bookings: list[Booking] = []
        skipped = 0
        for record in records:
            try:
                raw = RawBooking.model_validate(record)
                bookings.append(self._to_booking(asset_id, raw))
            except ValueError as exc:
                skipped += 1
                logger.debug("Skipping malformed booking for asset %d: %s", asset_id, exc)
        return bookings, skipped

    def _to_booking(self, asset_id: int, raw: RawBooking) -> Booking:
        # Upstream already speaks club time; keep its wall clock as-is.
        if raw.start.date() != raw.end.date():
            raise ValueError("booking spans more than one day")
        start_time = raw.start.time()
        end_time = raw.end.time()
        return Booking(
            asset_id=asset_id,
            day=raw.start.date(),
            start_time=start_time,
            end_time=end_time,
            member_name=_BOOKED_BY_RE.sub("", raw.title).strip(),
            session=self._session_name(start_time, end_time),
        )

    def _session_name(self, start: time, end: time) -> str:
        for window in self._settings.sessions:
            if window.start == start and window.end == end:
                return window.name
        return _CUSTOM_SESSION

    # ── Merging ───────────────────────────────────────────────────────

    def attach_bookings(
        self,
        assets: Sequence[Asset],
        results: dict[int, AssetFetchResult],
        window_days: int | None = None,
    ) -> list[BoatWithBookings]:
        """Pair each asset with its fetch outcome and availability."""
        days = window_days or self._settings.window_days
        boats: list[BoatWithBookings] = []
        for asset in assets:
            result = results.get(asset.id)
            if result is None:
                result = AssetFetchResult(
                    asset.id, error=FetchError(asset.id, "not fetched"),
                )
            boats.append(
                BoatWithBookings(
                    **asset.model_dump(),
                    bookings=result.bookings,
                    fetch_error=result.error.reason if result.error else None,
                    skipped_bookings=result.skipped,
                    availability=None if result.error else self._availability(result.bookings, days),
                )
            )
        return boats

    def _availability(self, bookings: list[Booking], days: int) -> Availability:
        total = days * len(self._settings.sessions)
        booked = sum(1 for b in bookings if b.session != _CUSTOM_SESSION)
        return Availability(
            total_slots=total,
            booked_slots=booked,
            available_slots=max(total - booked, 0),
            utilization_percent=round(booked / total * 100) if total else 0,
        )
