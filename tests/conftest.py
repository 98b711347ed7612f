"""
Shared test fixtures.

Provides RevSport settings tuned for tests (no backoff, no batch delay),
a scriptable fake RevSport site, a RevSportClient wired to it through
httpx.MockTransport, and a controllable clock.

The `client` fixture is a FastAPI TestClient whose cache is backed by a
mock booking source, so route tests make no HTTP calls at all.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from boatboard.main import create_app
from boatboard.services.cache import BookingCache
from boatboard.services.revsport.client import RevSportClient
from boatboard.services.revsport.config import RevSportSettings
from tests.mocks.helpers import FakeClock, make_settings
from tests.mocks.services import MockBookingSource
from tests.mocks.upstream import FakeRevSport

# ── RevSport ───────────────────────────────────────────────────────────────


@pytest.fixture()
def settings() -> RevSportSettings:
    return make_settings()


@pytest.fixture()
def upstream() -> FakeRevSport:
    return FakeRevSport()


@pytest.fixture()
def revsport(settings: RevSportSettings, upstream: FakeRevSport) -> RevSportClient:
    """RevSportClient talking to the fake site."""
    return RevSportClient(settings, transport=upstream.transport())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ── API ────────────────────────────────────────────────────────────────────


@pytest.fixture()
def booking_source() -> MockBookingSource:
    return MockBookingSource()


@pytest.fixture()
def booking_cache(booking_source: MockBookingSource) -> BookingCache:
    return BookingCache(booking_source, ttl_seconds=600)


@pytest.fixture()
def client(booking_cache: BookingCache):
    """TestClient with the lifespan running against the mock cache."""
    with TestClient(create_app(cache=booking_cache)) as c:
        yield c
