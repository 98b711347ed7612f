"""
Asset discovery – scrapes the boat list from the /bookings page.
"""

from __future__ import annotations

import logging

from boatboard.errors import AuthError, DiscoveryError, TransportError
from boatboard.models import Asset
from boatboard.services.classifier import classify
from boatboard.services.revsport.client import RevSportClient, Session
from boatboard.services.revsport.config import BOOKING_URL, BOOKINGS_PATH
from boatboard.services.revsport.parser import AssetBlock, is_login_page, parse_asset_blocks

logger = logging.getLogger(__name__)


class AssetService:
    def __init__(self, client: RevSportClient) -> None:
        self._client = client

    async def discover_assets(self, session: Session) -> list[Asset]:
        """
        Fetch and classify every boat on the listing page.

        An empty page is a valid (if unusual) fleet, not an error.
        """
        logger.info("Fetching assets from %s...", BOOKINGS_PATH)
        try:
            resp = await self._client.request(session, "GET", BOOKINGS_PATH)
        except (TransportError, AuthError) as exc:
            raise DiscoveryError(f"Listing page unreachable: {exc}") from exc

        html = resp.text
        if is_login_page(html):
            raise DiscoveryError("Listing page came back as the login form")

        assets = self.parse_assets(html)
        logger.info("Found %d assets", len(assets))
        return assets

    def parse_assets(self, html: str) -> list[Asset]:
        assets: dict[int, Asset] = {}
        for index, block in enumerate(parse_asset_blocks(html)):
            asset = self._to_asset(index, block)
            if asset is None:
                continue
            if asset.id in assets:
                logger.debug("Skipping duplicate listing of boat %d (%r)", asset.id, asset.full_name)
                continue
            assets[asset.id] = asset
        return list(assets.values())

    @staticmethod
    def _to_asset(index: int, block: AssetBlock) -> Asset | None:
        if not block.raw_name:
            logger.debug("Skipping card %d: no name found", index)
            return None
        if block.asset_id is None:
            logger.debug("Skipping boat %r: no id found", block.raw_name)
            return None

        attributes = classify(block.raw_name)
        return Asset(
            **attributes.model_dump(),
            id=block.asset_id,
            full_name=block.raw_name,
            calendar_url=block.calendar_url,
            booking_url=BOOKING_URL.format(asset_id=block.asset_id),
        )
