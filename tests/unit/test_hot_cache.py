"""Hot cache adapters: in-memory semantics and the Redis command contract."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from gitpoke.cache.hot import InMemoryHotCache, RedisHotCache
from gitpoke.errors import TransientDependencyError


class TestInMemoryHotCache:
    async def test_set_get_expire(self, clock):
        cache = InMemoryHotCache(clock.monotonic)
        await cache.set("k", "v", 10)
        assert await cache.get("k") == "v"
        clock.advance(10)
        assert await cache.get("k") is None

    async def test_delete_by_pattern(self, clock):
        cache = InMemoryHotCache(clock.monotonic)
        for key in ("badge:alice:v1", "badge:alice:v1:interactive", "badge:alicex:v1", "activity:alice"):
            await cache.set(key, "x", 60)
        assert await cache.delete_by_pattern("badge:alice:*") == 2
        assert sorted(cache.keys()) == ["activity:alice", "badge:alicex:v1"]

    async def test_incr_keeps_first_expiry(self, clock):
        cache = InMemoryHotCache(clock.monotonic)
        assert await cache.incr_with_expiry("c", 5) == 1
        clock.advance(4)
        assert await cache.incr_with_expiry("c", 5) == 2
        clock.advance(1)
        assert await cache.incr_with_expiry("c", 5) == 1


class TestRedisHotCache:
    def _redis(self):
        redis = MagicMock()
        redis.get = AsyncMock(return_value="v")
        redis.set = AsyncMock()
        redis.delete = AsyncMock(return_value=1)
        redis.ping = AsyncMock(return_value=True)
        return redis

    async def test_set_uses_ex(self):
        redis = self._redis()
        await RedisHotCache(redis).set("k", "v", 300)
        redis.set.assert_awaited_once_with("k", "v", ex=300)

    async def test_incr_runs_incr_and_expire_nx_in_a_transaction(self):
        redis = self._redis()
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[3, False])
        redis.pipeline.return_value = pipe

        assert await RedisHotCache(redis).incr_with_expiry("rate_limit:poke:ip:1", 60) == 3
        redis.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("rate_limit:poke:ip:1")
        pipe.expire.assert_called_once_with("rate_limit:poke:ip:1", 60, nx=True)

    async def test_delete_by_pattern_scans(self):
        redis = self._redis()

        async def scan_iter(match, count):
            for key in ("badge:a:v1", "badge:a:v1:interactive"):
                yield key

        redis.scan_iter = scan_iter
        redis.delete = AsyncMock(return_value=2)
        assert await RedisHotCache(redis).delete_by_pattern("badge:a:*") == 2
        redis.delete.assert_awaited_once_with("badge:a:v1", "badge:a:v1:interactive")

    async def test_redis_errors_become_transient(self):
        redis = self._redis()
        redis.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        with pytest.raises(TransientDependencyError) as exc_info:
            await RedisHotCache(redis).get("k")
        assert exc_info.value.dependency == "hot_cache"
