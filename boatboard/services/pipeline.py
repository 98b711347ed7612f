"""
One refresh cycle: login → discover boats → fetch calendars → group.

The pipeline builds a BookingSnapshot and hands it back; it never
touches the cache.  Any step that fails raises, and nothing after it
runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone

from boatboard.errors import RefreshError
from boatboard.models import BookingSnapshot
from boatboard.services.asset_service import AssetService
from boatboard.services.booking_service import BookingService
from boatboard.services.grouping import group_and_sort
from boatboard.services.revsport.client import RevSportClient
from boatboard.services.revsport.config import RevSportSettings

logger = logging.getLogger(__name__)


class RevSportBookingSource:
    """
    Produces booking snapshots from RevSport.

    Usage::

        client = RevSportClient(settings)
        source = RevSportBookingSource(client, settings)
        snapshot = await source.load()
    """

    def __init__(
        self,
        client: RevSportClient,
        settings: RevSportSettings,
        *,
        asset_service: AssetService | None = None,
        booking_service: BookingService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._assets = asset_service or AssetService(client)
        self._bookings = booking_service or BookingService(client, settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _today(self) -> date:
        return self._clock().astimezone(self._settings.zone).date()

    async def load(self) -> BookingSnapshot:
        session = await self._client.ensure_session()

        assets = await self._assets.discover_assets(session)

        window_start = self._today()
        window_days = self._settings.window_days
        results = await self._bookings.fetch_bookings(
            session, assets, window_start, window_days,
        )

        failed = sorted(asset_id for asset_id, r in results.items() if not r.ok)
        if results and len(failed) == len(results):
            raise RefreshError(f"All {len(results)} booking fetches failed")

        boats = self._bookings.attach_bookings(assets, results, window_days)
        grouped = group_and_sort(boats)

        return BookingSnapshot(
            grouped=grouped,
            generated_at=self._clock(),
            window_start=window_start,
            window_end=window_start + timedelta(days=window_days),
            failed_assets=failed,
            skipped_bookings=sum(r.skipped for r in results.values()),
        )
