"""Hot cache: low-latency key-value tier with TTLs.

Two implementations of the same capability:
- RedisHotCache: production, backed by a redis.asyncio client owned by the caller.
- InMemoryHotCache: in-process, with an injectable clock, for local runs and tests.
"""

from __future__ import annotations

import fnmatch
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import HOT_CACHE

if TYPE_CHECKING:
    from redis.asyncio import Redis


class HotCache(ABC):
    """Abstract hot cache capability."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number deleted."""
        ...

    @abstractmethod
    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and return the new count.

        The expiry is set when the key is created and is not extended by later
        increments, so the key describes one fixed window.
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...


class RedisHotCache(HotCache):
    """Hot cache on Redis. The client's lifecycle belongs to AppDependencies."""

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def get(self, key: str) -> str | None:
        try:
            return await self.redis.get(key)
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc

    async def delete_by_pattern(self, pattern: str) -> int:
        deleted = 0
        try:
            batch: list[str] = []
            async for key in self.redis.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self.redis.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.redis.delete(*batch)
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc
        return deleted

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        # MULTI/EXEC: INCR and EXPIRE NX apply as one unit
        try:
            pipe = self.redis.pipeline(transaction=True)
            pipe.incr(key)
            pipe.expire(key, ttl_seconds, nx=True)
            results = await pipe.execute()
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc
        return int(results[0])

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc


class InMemoryHotCache(HotCache):
    """Dict-backed hot cache. Each method body runs without awaiting, so it is atomic on one event loop."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def delete_by_pattern(self, pattern: str) -> int:
        matched = [k for k in list(self._data) if self._live(k) and fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            del self._data[key]
        return len(matched)

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        entry = self._live(key)
        if entry is None:
            self._data[key] = ("1", self._clock() + ttl_seconds)
            return 1
        value, expires_at = entry
        count = int(value) + 1
        self._data[key] = (str(count), expires_at)
        return count

    async def ping(self) -> bool:
        return True

    def keys(self) -> list[str]:
        return [k for k in list(self._data) if self._live(k)]
