"""
HTML parsing for RevSport pages.

This is the only module that knows what RevSport markup looks like.
Everything it hands back is a plain value or an AssetBlock record, so a
change in upstream structure is fixed here and nowhere else.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from boatboard.services.revsport.config import (
    ASSET_CALENDAR_LINK_SELECTOR,
    ASSET_CARD_SELECTOR,
    ASSET_NAME_SELECTOR,
    CSRF_SELECTORS,
    LOGIN_ERROR_SELECTORS,
    LOGIN_FORM_SELECTORS,
    LOGOUT_SELECTORS,
)

logger = logging.getLogger(__name__)

_CALENDAR_ID_RE = re.compile(r"/calendar/(\d+)")


@dataclass(frozen=True)
class AssetBlock:
    """One boat card from the listing page, before classification."""

    asset_id: int | None
    raw_name: str | None
    calendar_url: str | None


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_csrf_token(html: str) -> str | None:
    """Return the login form's CSRF token, or None if the page has none."""
    soup = _soup(html)
    for selector, attr in CSRF_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        value = (node.get(attr) or "").strip()
        if value:
            return value
    return None


def has_logout_marker(soup: BeautifulSoup) -> bool:
    return any(soup.select_one(sel) is not None for sel in LOGOUT_SELECTORS)


def has_login_form(soup: BeautifulSoup) -> bool:
    return any(soup.select_one(sel) is not None for sel in LOGIN_FORM_SELECTORS)


def is_logged_in(html: str) -> bool:
    """True when the page shows a logout affordance and no login form."""
    soup = _soup(html)
    return has_logout_marker(soup) and not has_login_form(soup)


def is_login_page(html: str) -> bool:
    return has_login_form(_soup(html))


def extract_login_error(html: str) -> str | None:
    soup = _soup(html)
    for selector in LOGIN_ERROR_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            text = " ".join(node.get_text(" ", strip=True).split())
            if text:
                return text
    return None


def parse_asset_blocks(html: str) -> list[AssetBlock]:
    """Extract one AssetBlock per boat card on the listing page."""
    soup = _soup(html)
    blocks: list[AssetBlock] = []

    for card in soup.select(ASSET_CARD_SELECTOR):
        name_node = card.select_one(ASSET_NAME_SELECTOR)
        raw_name = name_node.get_text(" ", strip=True) if name_node is not None else ""

        link = card.select_one(ASSET_CALENDAR_LINK_SELECTOR)
        calendar_url = (link.get("href") or "") if link is not None else ""
        match = _CALENDAR_ID_RE.search(calendar_url)

        blocks.append(
            AssetBlock(
                asset_id=int(match.group(1)) if match else None,
                raw_name=raw_name or None,
                calendar_url=calendar_url or None,
            )
        )

    logger.debug("Parsed %d asset blocks", len(blocks))
    return blocks
