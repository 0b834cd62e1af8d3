"""Tiered cache coordinator: hot cache -> cold store -> origin.

Activity records live only in the hot cache (``activity:{username}``); badge
artifacts live in both tiers (``badge:{username}:v1[...]``). Every call into a
tier is bounded by that tier's timeout. Cache writes never fail a read.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from gitpoke.accounts.identifiers import Username
from gitpoke.activity.classifier import (
    DEFAULT_ACTIVE_TTL_SECONDS,
    DEFAULT_INACTIVE_TTL_SECONDS,
    ActivityRecord,
    activity_cache_ttl,
)
from gitpoke.activity.source import ActivitySource
from gitpoke.badges.renderer import BadgeArtifact
from gitpoke.cache.cold import DurableObjectStore
from gitpoke.cache.hot import HotCache
from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import DURABLE_STORE, HOT_CACHE, ORIGIN, BackgroundTasks, call_with_timeout

logger = structlog.get_logger()

BADGE_KEY_VERSION = "v1"

HIT = "HIT"
COLD = "COLD"


def activity_key(username: Username) -> str:
    return f"activity:{username.value}"


def badge_key(username: Username, *, interactive: bool = False) -> str:
    key = f"badge:{username.value}:{BADGE_KEY_VERSION}"
    return f"{key}:interactive" if interactive else key


def invalidation_patterns(username: Username) -> list[str]:
    """Hot-cache patterns holding state derived from this user's settings."""
    u = username.value
    return [f"user:{u}", f"badge:{u}:*", f"activity:{u}", f"activity:{u}:*"]


@dataclass(frozen=True, slots=True)
class CachedBadge:
    artifact: BadgeArtifact
    tier: str


class TieredCacheCoordinator:
    def __init__(
        self,
        hot: HotCache,
        cold: DurableObjectStore,
        origin: ActivitySource,
        background: BackgroundTasks,
        *,
        hot_timeout: float = 1.0,
        cold_timeout: float = 2.0,
        origin_timeout: float = 3.0,
        active_ttl: int = DEFAULT_ACTIVE_TTL_SECONDS,
        inactive_ttl: int = DEFAULT_INACTIVE_TTL_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.hot = hot
        self.cold = cold
        self.origin = origin
        self.background = background
        self.hot_timeout = hot_timeout
        self.cold_timeout = cold_timeout
        self.origin_timeout = origin_timeout
        self.active_ttl = active_ttl
        self.inactive_ttl = inactive_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ── Activity ──

    async def get_activity(self, username: Username) -> ActivityRecord | None:
        """Activity from the hot cache, else from the origin (then cached).

        Returns None when the origin has no such user. An unreachable hot
        cache is treated as a miss; an unreachable origin raises
        TransientDependencyError.
        """
        key = activity_key(username)
        cached = await self._hot_get(key)
        if cached is not None:
            return ActivityRecord.from_json(cached)

        record = await call_with_timeout(
            ORIGIN, lambda: self.origin.fetch_activity(username), self.origin_timeout, retries=1
        )
        if record is None:
            return None

        ttl = activity_cache_ttl(
            record, self._clock(), active_ttl=self.active_ttl, inactive_ttl=self.inactive_ttl
        )
        await self._hot_set(key, record.to_json(), ttl, event="activity_cache_write_failed")
        return record

    # ── Badges ──

    async def lookup_badge(self, key: str) -> CachedBadge | None:
        """Hot cache, then a fresh cold copy (promoted into the hot cache)."""
        cached = await self._hot_get(key)
        if cached is not None:
            return CachedBadge(BadgeArtifact.from_json(cached), HIT)

        entry = await self._cold_get(key)
        if entry is None:
            return None
        artifact, stored_at = entry
        remaining = artifact.cache_ttl_seconds - int((self._clock() - stored_at).total_seconds())
        if remaining <= 0:
            return None

        await self._hot_set(key, artifact.to_json(), remaining, event="badge_promotion_failed")
        logger.debug("badge_cache_promoted", key=key, ttl=remaining)
        return CachedBadge(artifact, COLD)

    async def get_badge(self, key: str) -> BadgeArtifact | None:
        found = await self.lookup_badge(key)
        return found.artifact if found else None

    async def get_stale_badge(self, key: str) -> BadgeArtifact | None:
        """Last durable copy regardless of age, for degraded reads."""
        entry = await self._cold_get(key)
        return entry[0] if entry else None

    async def put_badge(self, key: str, artifact: BadgeArtifact) -> None:
        """Write to the hot cache now and to the cold store in the background."""
        await self._hot_set(key, artifact.to_json(), artifact.cache_ttl_seconds, event="badge_cache_write_failed")
        payload = json.dumps({
            "artifact": json.loads(artifact.to_json()),
            "stored_at": self._clock().isoformat(),
        }).encode()
        self.background.spawn(
            "badge_cold_write",
            call_with_timeout(DURABLE_STORE, lambda: self.cold.put(key, payload), self.cold_timeout),
        )

    # ── Invalidation ──

    async def invalidate_user(self, username: Username) -> int:
        """Drop every cached value derived from this user's settings.

        Hot-cache deletion must succeed (raises TransientDependencyError
        otherwise). Cold badge copies are overwritten with a tombstone so a
        stale artifact cannot be promoted back; that part is best-effort.
        """
        deleted = 0
        for pattern in invalidation_patterns(username):
            deleted += await call_with_timeout(
                HOT_CACHE, lambda p=pattern: self.hot.delete_by_pattern(p), self.hot_timeout, retries=1
            )

        tombstone = json.dumps({"invalidated_at": self._clock().isoformat()}).encode()
        for key in (badge_key(username), badge_key(username, interactive=True)):
            try:
                await call_with_timeout(
                    DURABLE_STORE, lambda k=key: self.cold.put(k, tombstone), self.cold_timeout
                )
            except TransientDependencyError:
                logger.warning("badge_tombstone_write_failed", key=key)

        logger.info("user_cache_invalidated", username=username.value, deleted=deleted)
        return deleted

    # ── Tier helpers ──

    async def _hot_get(self, key: str) -> str | None:
        try:
            return await call_with_timeout(HOT_CACHE, lambda: self.hot.get(key), self.hot_timeout, retries=1)
        except TransientDependencyError:
            return None

    async def _hot_set(self, key: str, value: str, ttl: int, *, event: str) -> None:
        try:
            await call_with_timeout(HOT_CACHE, lambda: self.hot.set(key, value, ttl), self.hot_timeout)
        except TransientDependencyError:
            logger.warning(event, key=key)

    async def _cold_get(self, key: str) -> tuple[BadgeArtifact, datetime] | None:
        try:
            raw = await call_with_timeout(
                DURABLE_STORE, lambda: self.cold.get(key), self.cold_timeout, retries=1
            )
        except TransientDependencyError:
            return None
        if raw is None:
            return None
        data = json.loads(raw)
        if "artifact" not in data:
            return None
        return BadgeArtifact.from_json(json.dumps(data["artifact"])), datetime.fromisoformat(data["stored_at"])
