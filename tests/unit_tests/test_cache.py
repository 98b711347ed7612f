"""Tests for the caching layer."""

import asyncio

import pytest

from boatboard.errors import RefreshError
from boatboard.models import CacheState
from boatboard.services.cache import BookingCache
from tests.mocks.helpers import FakeClock
from tests.mocks.services import MockBookingSource


@pytest.fixture()
def source() -> MockBookingSource:
    return MockBookingSource()


@pytest.fixture()
def cache(source: MockBookingSource, clock: FakeClock) -> BookingCache:
    return BookingCache(source, ttl_seconds=600, clock=clock)


# ── Filling and reuse ──────────────────────────────────────────────────────


class TestGet:
    def test_starts_empty(self, cache: BookingCache):
        assert cache.state == CacheState.EMPTY
        assert cache.entry is None

    @pytest.mark.asyncio
    async def test_first_get_fills(self, cache: BookingCache, source: MockBookingSource, clock):
        entry = await cache.get()

        assert source.loads == 1
        assert cache.state == CacheState.FRESH
        assert entry.stale is False
        assert entry.metadata.total_boats == 6
        assert entry.metadata.total_bookings == 3
        assert entry.metadata.expires_at == clock.now.replace(minute=10)
        assert [b.id for b in entry.boats] == [b.id for b in entry.grouped.flatten()]

    @pytest.mark.asyncio
    async def test_fresh_entry_is_reused(self, cache: BookingCache, source: MockBookingSource, clock):
        first = await cache.get()
        clock.advance(minutes=5)
        second = await cache.get()

        assert second is first
        assert source.loads == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refreshes_once(
        self, cache: BookingCache, source: MockBookingSource, clock,
    ):
        await cache.get()
        clock.advance(minutes=11)
        assert cache.state == CacheState.STALE

        await cache.get()
        await cache.get()

        assert source.loads == 2
        assert cache.state == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_force_refresh(self, cache: BookingCache, source: MockBookingSource):
        first = await cache.get()
        second = await cache.get(force_refresh=True)
        assert second is not first
        assert source.loads == 2


# ── Single flight ──────────────────────────────────────────────────────────


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_cycle(self, clock):
        source = MockBookingSource(delay=0.01)
        cache = BookingCache(source, clock=clock)

        entries = await asyncio.gather(*(cache.get() for _ in range(10)))

        assert source.loads == 1
        assert all(e is entries[0] for e in entries)

    @pytest.mark.asyncio
    async def test_state_while_refreshing(self, clock):
        source = MockBookingSource(delay=0.05)
        cache = BookingCache(source, clock=clock)

        pending = asyncio.create_task(cache.get())
        await source.started.wait()
        assert cache.state == CacheState.REFRESHING
        await pending
        assert cache.state == CacheState.FRESH

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_cycle(self, clock):
        source = MockBookingSource(delay=0.05)
        cache = BookingCache(source, clock=clock)

        impatient = asyncio.create_task(cache.get())
        patient = asyncio.create_task(cache.get())
        await source.started.wait()
        impatient.cancel()

        entry = await patient
        assert entry.stale is False
        assert source.loads == 1
        assert impatient.cancelled()

    @pytest.mark.asyncio
    async def test_close_abandons_cycle(self, clock):
        source = MockBookingSource(delay=1.0)
        cache = BookingCache(source, clock=clock)

        waiting = asyncio.create_task(cache.get())
        await source.started.wait()
        await cache.close()

        with pytest.raises(asyncio.CancelledError):
            await waiting
        assert cache.entry is None
        assert cache.state == CacheState.EMPTY


# ── Failures ───────────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_without_data_raises(self, cache: BookingCache, source: MockBookingSource):
        source.fail_with("login rejected")

        with pytest.raises(RefreshError, match="login rejected"):
            await cache.get()
        assert cache.state == CacheState.EMPTY
        assert cache.health().last_error == "login rejected"

    @pytest.mark.asyncio
    async def test_failure_serves_stale(self, cache: BookingCache, source: MockBookingSource, clock):
        fresh = await cache.get()
        clock.advance(minutes=11)
        source.fail_with()

        entry = await cache.get()

        assert entry.stale is True
        assert entry.boats == fresh.boats
        assert entry.metadata == fresh.metadata
        assert cache.state == CacheState.STALE

    @pytest.mark.asyncio
    async def test_forced_failure_serves_stale(self, cache: BookingCache, source: MockBookingSource):
        await cache.get()
        source.fail_with()
        entry = await cache.get(force_refresh=True)
        assert entry.stale is True

    @pytest.mark.asyncio
    async def test_unexpected_error_serves_stale(self, cache: BookingCache, source: MockBookingSource):
        fresh = await cache.get()
        source.error = RuntimeError("unexpected parse bug")

        entry = await cache.get(force_refresh=True)

        assert entry.stale is True
        assert entry.boats == fresh.boats
        assert "unexpected parse bug" in cache.health().last_error

    @pytest.mark.asyncio
    async def test_unexpected_error_without_data_is_refresh_error(
        self, cache: BookingCache, source: MockBookingSource,
    ):
        source.error = RuntimeError("unexpected parse bug")
        with pytest.raises(RefreshError, match="unexpected parse bug"):
            await cache.get()
        assert cache.state == CacheState.EMPTY

    @pytest.mark.asyncio
    async def test_stale_entry_retries_and_recovers(
        self, cache: BookingCache, source: MockBookingSource,
    ):
        await cache.get()
        source.fail_with()
        await cache.get(force_refresh=True)

        source.recover()
        entry = await cache.get()

        assert entry.stale is False
        assert source.loads == 3
        assert cache.health().last_error is None

    @pytest.mark.asyncio
    async def test_retry_is_allowed_after_failure(
        self, cache: BookingCache, source: MockBookingSource,
    ):
        source.fail_with()
        with pytest.raises(RefreshError):
            await cache.get()

        source.recover()
        entry = await cache.get()
        assert entry.stale is False


# ── Maintenance ────────────────────────────────────────────────────────────


class TestHealthAndClear:
    def test_health_when_empty(self, cache: BookingCache):
        health = cache.health()
        assert health.is_cached is False
        assert health.state == CacheState.EMPTY
        assert health.age_ms is None

    @pytest.mark.asyncio
    async def test_health_reports_age(self, cache: BookingCache, clock):
        await cache.get()
        clock.advance(seconds=30)

        health = cache.health()

        assert health.is_cached is True
        assert health.state == CacheState.FRESH
        assert health.age_ms == 30_000
        assert health.stale is False

    @pytest.mark.asyncio
    async def test_clear(self, cache: BookingCache, source: MockBookingSource):
        await cache.get()
        cache.clear()

        assert cache.state == CacheState.EMPTY
        await cache.get()
        assert source.loads == 2
