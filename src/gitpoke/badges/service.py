"""Badge use case: username -> cached or freshly rendered artifact."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from gitpoke.accounts.identifiers import Username
from gitpoke.accounts.store import AccountStore
from gitpoke.activity.classifier import classify, is_active
from gitpoke.badges.renderer import DEFAULT_POKE_ACTION_BASE_URL, BadgeArtifact, render_badge
from gitpoke.cache.coordinator import TieredCacheCoordinator, badge_key
from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import DATABASE, call_with_timeout

logger = structlog.get_logger()

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
CACHE_STALE = "STALE"

# Downstream caches should re-ask soon after an origin outage
STALE_MAX_AGE_SECONDS = 60


@dataclass(frozen=True, slots=True)
class BadgeResponse:
    artifact: BadgeArtifact
    cache_status: str

    @property
    def cache_control(self) -> str:
        if self.cache_status == CACHE_STALE:
            return f"public, max-age={STALE_MAX_AGE_SECONDS}"
        return self.artifact.cache_control


class BadgeService:
    def __init__(
        self,
        coordinator: TieredCacheCoordinator,
        accounts: AccountStore,
        *,
        action_base_url: str = DEFAULT_POKE_ACTION_BASE_URL,
        store_timeout: float = 2.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.accounts = accounts
        self.action_base_url = action_base_url
        self.store_timeout = store_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_badge(self, username: Username, *, interactive: bool = False) -> BadgeResponse:
        """Serve a badge through the tiered cache.

        When regeneration fails on a transient dependency, the last durable
        copy is served instead; with no copy at all the error propagates.
        """
        key = badge_key(username, interactive=interactive)
        found = await self.coordinator.lookup_badge(key)
        if found is not None:
            # a cold promotion still counts as served from cache
            return BadgeResponse(found.artifact, CACHE_HIT)

        try:
            artifact = await self._generate(username, interactive=interactive)
        except TransientDependencyError as exc:
            stale = await self.coordinator.get_stale_badge(key)
            if stale is None:
                raise
            logger.warning("badge_served_stale", username=username.value, dependency=exc.dependency)
            return BadgeResponse(stale, CACHE_STALE)

        await self.coordinator.put_badge(key, artifact)
        return BadgeResponse(artifact, CACHE_MISS)

    async def _generate(self, username: Username, *, interactive: bool) -> BadgeArtifact:
        record = await self.coordinator.get_activity(username)
        if record is None:
            return render_badge(
                username.value,
                None,
                poke_eligible=False,
                interactive_requested=interactive,
                action_base_url=self.action_base_url,
            )

        state = classify(record, self._clock())
        poke_eligible = False
        if not is_active(state):
            poke_eligible = await self._poke_eligible(username)
        return render_badge(
            username.value,
            state,
            poke_eligible=poke_eligible,
            interactive_requested=interactive,
            streak_days=record.current_streak_days,
            action_base_url=self.action_base_url,
        )

    async def _poke_eligible(self, username: Username) -> bool:
        """Registered and accepting pokes from someone."""
        account = await call_with_timeout(
            DATABASE, lambda: self.accounts.find_by_username(username), self.store_timeout, retries=1
        )
        return account is not None and account.poke_setting.is_enabled
