"""
Error taxonomy for the fetch & cache pipeline.

Cycle-level errors (AuthError, DiscoveryError, RefreshError) abort the
current refresh and are absorbed by the cache when older data exists.
FetchError is local to one boat and never escapes the booking service.
"""

from __future__ import annotations


class BoatboardError(Exception):
    """Base class for every error raised by the pipeline."""


class AuthError(BoatboardError):
    """Login could not be established or verified."""


class NeedsReauth(AuthError):
    """A request was still rejected after one transparent re-login."""


class TransportError(BoatboardError):
    """Network failure, timeout or unexpected status from upstream."""


class DiscoveryError(BoatboardError):
    """The boat listing page was unreachable or unrecognisable."""


class FetchError(BoatboardError):
    """Bookings for a single boat could not be fetched or parsed."""

    def __init__(self, asset_id: int, message: str) -> None:
        super().__init__(f"asset {asset_id}: {message}")
        self.asset_id = asset_id
        self.reason = message


class RefreshError(BoatboardError):
    """A refresh cycle failed for a reason not covered above."""
