"""IP rate gate and same-day duplicate gate."""

import asyncio
import uuid
from datetime import date, datetime, timezone

import pytest

from gitpoke.accounts.identifiers import Username
from gitpoke.cache.hot import InMemoryHotCache
from gitpoke.errors import TransientDependencyError
from gitpoke.pokes.anti_abuse import FixedWindowRateLimiter, already_poked_today
from gitpoke.pokes.policy import PokeEvent
from gitpoke.pokes.store import InMemoryEventStore


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter(InMemoryHotCache(clock.monotonic), scope="poke", limit=10, window_seconds=60)


class TestFixedWindowRateLimiter:
    async def test_eleventh_request_denied(self, limiter):
        decisions = [await limiter.hit("10.0.0.1") for _ in range(11)]
        assert all(d.allowed for d in decisions[:10])
        assert not decisions[10].allowed
        assert decisions[10].remaining == 0

    async def test_window_expiry_resets(self, limiter, clock):
        for _ in range(11):
            await limiter.hit("10.0.0.1")
        clock.advance(60)
        decision = await limiter.hit("10.0.0.1")
        assert decision.allowed
        assert decision.count == 1

    async def test_window_is_not_extended_by_hits(self, limiter, clock):
        await limiter.hit("10.0.0.1")
        clock.advance(59)
        assert (await limiter.hit("10.0.0.1")).count == 2
        clock.advance(1)
        assert (await limiter.hit("10.0.0.1")).count == 1

    async def test_ips_are_independent(self, limiter):
        for _ in range(10):
            await limiter.hit("10.0.0.1")
        assert (await limiter.hit("10.0.0.2")).allowed

    async def test_key_format(self, limiter):
        assert limiter.key_for("1.2.3.4") == "rate_limit:poke:ip:1.2.3.4"

    async def test_concurrent_hits_count_exactly(self, limiter):
        decisions = await asyncio.gather(*(limiter.hit("10.0.0.9") for _ in range(25)))
        assert sorted(d.count for d in decisions) == list(range(1, 26))
        assert sum(d.allowed for d in decisions) == 10

    async def test_counter_failure_is_fatal(self):
        class BrokenCache(InMemoryHotCache):
            async def incr_with_expiry(self, key, ttl_seconds):
                raise ConnectionError("redis down")

        limiter = FixedWindowRateLimiter(BrokenCache(), scope="poke", limit=10)
        with pytest.raises(TransientDependencyError):
            await limiter.hit("10.0.0.1")


class TestAlreadyPokedToday:
    async def test_matches_recipient_on_same_day(self):
        store = InMemoryEventStore()
        at = datetime(2026, 3, 4, 8, 0, tzinfo=timezone.utc)
        await store.save(PokeEvent(uuid.uuid4(), Username("alice"), Username("bob"), at))

        assert await already_poked_today(store, Username("alice"), Username("bob"), date(2026, 3, 4))
        assert not await already_poked_today(store, Username("alice"), Username("carol"), date(2026, 3, 4))
        assert not await already_poked_today(store, Username("alice"), Username("bob"), date(2026, 3, 5))
        assert not await already_poked_today(store, Username("bob"), Username("alice"), date(2026, 3, 4))
