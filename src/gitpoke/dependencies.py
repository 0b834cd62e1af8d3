"""Application dependency container and FastAPI accessors.

``AppDependencies`` owns every client handle (Redis, the SQLAlchemy engine,
the GitHub httpx client, the aioboto3 session) and every service built on
them. It is created in the lifespan, stored on ``app.state.deps`` and closed
on shutdown.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from fastapi import Request

from gitpoke.accounts.service import AccountService
from gitpoke.accounts.store import AccountStore, InMemoryAccountStore, SqlAccountStore
from gitpoke.activity.source import ActivitySource, GitHubActivitySource, InMemoryActivitySource
from gitpoke.auth.identity import GitHubIdentityProvider, IdentityProvider, StaticIdentityProvider
from gitpoke.auth.sessions import SessionManager
from gitpoke.badges.service import BadgeService
from gitpoke.cache.cold import DurableObjectStore, InMemoryObjectStore, S3ObjectStore
from gitpoke.cache.coordinator import TieredCacheCoordinator
from gitpoke.cache.hot import HotCache, InMemoryHotCache, RedisHotCache
from gitpoke.config import Settings
from gitpoke.pokes.anti_abuse import FixedWindowRateLimiter
from gitpoke.pokes.notifier import PokeNotifier, RecordingNotifier, RedisPubSubNotifier
from gitpoke.pokes.service import PokeService
from gitpoke.pokes.store import EventStore, InMemoryEventStore, SqlEventStore
from gitpoke.resilience import BackgroundTasks

logger = structlog.get_logger()

MEMORY_BACKEND = "memory"


@dataclass
class AppDependencies:
    settings: Settings
    hot: HotCache
    cold: DurableObjectStore
    origin: ActivitySource
    identity: IdentityProvider
    accounts_store: AccountStore
    events_store: EventStore
    notifier: PokeNotifier
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc))
    background: BackgroundTasks = field(default_factory=BackgroundTasks)
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        s = self.settings
        self.coordinator = TieredCacheCoordinator(
            self.hot,
            self.cold,
            self.origin,
            self.background,
            hot_timeout=s.hot_cache_timeout_seconds,
            cold_timeout=s.durable_store_timeout_seconds,
            origin_timeout=s.origin_timeout_seconds,
            active_ttl=s.active_user_ttl_seconds,
            inactive_ttl=s.inactive_user_ttl_seconds,
            clock=self.clock,
        )
        self.sessions = SessionManager(
            self.hot,
            secret=s.session_secret,
            algorithm=s.session_algorithm,
            ttl_hours=s.session_ttl_hours,
            issuer=s.session_issuer,
            timeout=s.hot_cache_timeout_seconds,
        )
        self.poke_limiter = FixedWindowRateLimiter(
            self.hot,
            scope="poke",
            limit=s.poke_per_ip_per_minute,
            window_seconds=s.poke_rate_window_seconds,
            timeout=s.hot_cache_timeout_seconds,
        )
        self.badge_limiter = FixedWindowRateLimiter(
            self.hot,
            scope="badge",
            limit=s.badge_per_ip_per_minute,
            window_seconds=s.poke_rate_window_seconds,
            timeout=s.hot_cache_timeout_seconds,
        )
        self.badges = BadgeService(
            self.coordinator,
            self.accounts_store,
            action_base_url=s.poke_action_base_url,
            store_timeout=s.durable_store_timeout_seconds,
            clock=self.clock,
        )
        self.pokes = PokeService(
            self.accounts_store,
            self.events_store,
            self.origin,
            self.poke_limiter,
            self.notifier,
            self.background,
            store_timeout=s.durable_store_timeout_seconds,
            origin_timeout=s.origin_timeout_seconds,
            clock=self.clock,
        )
        self.accounts = AccountService(
            self.accounts_store,
            self.events_store,
            self.coordinator,
            self.sessions,
            store_timeout=s.durable_store_timeout_seconds,
            clock=self.clock,
        )

    @classmethod
    def in_memory(
        cls,
        settings: Settings,
        *,
        clock: Callable[[], datetime] | None = None,
        hot_clock: Callable[[], float] | None = None,
    ) -> AppDependencies:
        """Every capability backed by its in-process adapter."""
        hot = InMemoryHotCache(hot_clock) if hot_clock else InMemoryHotCache()
        kwargs = {"clock": clock} if clock else {}
        return cls(
            settings=settings,
            hot=hot,
            cold=InMemoryObjectStore(),
            origin=InMemoryActivitySource(),
            identity=StaticIdentityProvider(),
            accounts_store=InMemoryAccountStore(),
            events_store=InMemoryEventStore(),
            notifier=RecordingNotifier(),
            **kwargs,
        )

    @classmethod
    def production(cls, settings: Settings) -> AppDependencies:
        """Redis, PostgreSQL, S3 and the GitHub API."""
        import aioboto3
        import redis.asyncio as redis

        from gitpoke.database import Database

        redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        db = Database(settings.database_url)
        github = GitHubActivitySource.build_client(
            settings.github_api_base_url,
            settings.github_token,
            settings.github_user_agent,
            settings.origin_timeout_seconds,
        )
        deps = cls(
            settings=settings,
            hot=RedisHotCache(redis_client),
            cold=S3ObjectStore(
                aioboto3.Session(),
                settings.badge_bucket,
                prefix=settings.badge_prefix,
                region=settings.aws_region,
            ),
            origin=GitHubActivitySource(github),
            identity=GitHubIdentityProvider(github),
            accounts_store=SqlAccountStore(db),
            events_store=SqlEventStore(db),
            notifier=RedisPubSubNotifier(redis_client),
        )
        deps.closers.extend([github.aclose, db.close, redis_client.aclose])
        return deps

    @classmethod
    def from_settings(cls, settings: Settings) -> AppDependencies:
        if settings.storage_backend == MEMORY_BACKEND:
            return cls.in_memory(settings)
        return cls.production(settings)

    async def close(self) -> None:
        """Let background writes finish, then release every client."""
        await self.background.drain()
        for close in self.closers:
            try:
                await close()
            except Exception:  # noqa: BLE001
                logger.warning("dependency_close_failed", closer=getattr(close, "__qualname__", repr(close)))


def get_deps(request: Request) -> AppDependencies:
    """FastAPI dependency: the container built by the lifespan."""
    return request.app.state.deps
