"""
Small test doubles shared across test modules.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from boatboard.services.revsport.config import RevSportSettings
from tests.mocks.upstream import BASE_URL, PASSWORD, USERNAME


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 10, 25, 5, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_settings(**overrides) -> RevSportSettings:
    """Settings pointed at the fake site, with backoff and batch delay off."""
    values = {
        "username": USERNAME,
        "password": PASSWORD,
        "base_url": BASE_URL,
        "batch_delay_seconds": 0.0,
        "login_backoff_seconds": 0.0,
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return RevSportSettings(**values)
