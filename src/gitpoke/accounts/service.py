"""Account lifecycle: login registration, username drift, settings, deletion.

Every mutation that changes authorization-relevant state clears the user's
hot-cache entries before it returns.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.accounts.store import AccountStore
from gitpoke.auth.sessions import SessionManager
from gitpoke.cache.coordinator import TieredCacheCoordinator
from gitpoke.pokes.policy import PokeSetting, UserAccount
from gitpoke.pokes.store import EventStore
from gitpoke.resilience import DATABASE, call_with_timeout

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class AccountProfile:
    account: UserAccount
    pokes_sent_today: int
    pokes_received_today: int


class AccountService:
    def __init__(
        self,
        accounts: AccountStore,
        events: EventStore,
        coordinator: TieredCacheCoordinator,
        sessions: SessionManager,
        *,
        store_timeout: float = 2.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.accounts = accounts
        self.events = events
        self.coordinator = coordinator
        self.sessions = sessions
        self.store_timeout = store_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _store(self, factory, *, retries: int = 0):  # noqa: ANN001, ANN202
        return await call_with_timeout(DATABASE, factory, self.store_timeout, retries=retries)

    async def register_or_update(self, github_id: GitHubUserId, username: Username) -> UserAccount:
        """Create the account on first login; follow a username rename on later ones.

        GitHub is authoritative for who owns a login right now. If another
        account still holds ``username`` it renamed away on GitHub, so its row
        releases the name before this account claims it.
        """
        existing = await self._store(lambda: self.accounts.find_by_github_id(github_id), retries=1)
        if existing is not None and existing.username == username:
            return existing

        holder = await self._store(lambda: self.accounts.find_by_username(username), retries=1)
        if holder is not None and holder.github_id != github_id:
            await self._release(holder)

        if existing is None:
            now = self._clock()
            account = UserAccount(github_id=github_id, username=username, created_at=now, updated_at=now)
            await self._store(lambda: self.accounts.save(account))
            logger.info("account_registered", github_id=github_id.value, username=username.value)
            return account

        old = existing.username
        updated = await self._store(lambda: self.accounts.update(existing.with_username(username, self._clock())))
        await self.coordinator.invalidate_user(username)
        if old is not None:
            await self.coordinator.invalidate_user(old)
            await self.sessions.revoke_all(old)
        logger.info(
            "account_renamed", github_id=github_id.value, old=old.value if old else None, new=username.value
        )
        return updated

    async def _release(self, holder: UserAccount) -> None:
        """Take the username off an account whose owner renamed away from it on GitHub."""
        name = holder.username
        await self._store(lambda: self.accounts.release_username(holder))
        await self.coordinator.invalidate_user(name)
        await self.sessions.revoke_all(name)
        logger.info("username_released", github_id=holder.github_id.value, username=name.value)

    async def update_poke_setting(self, account: UserAccount, setting: PokeSetting) -> UserAccount:
        updated = await self._store(lambda: self.accounts.update(account.with_poke_setting(setting, self._clock())))
        await self.coordinator.invalidate_user(updated.username)
        logger.info("poke_setting_updated", username=updated.username.value, setting=setting.value)
        return updated

    async def delete_account(self, account: UserAccount) -> None:
        """Remove the account, its cached artifacts and its sessions. Poke events are kept."""
        await self._store(lambda: self.accounts.delete(account))
        await self.coordinator.invalidate_user(account.username)
        await self.sessions.revoke_all(account.username)
        logger.info("account_deleted", github_id=account.github_id.value, username=account.username.value)

    async def profile(self, account: UserAccount) -> AccountProfile:
        today = self._clock().astimezone(timezone.utc).date()
        sent = await self._store(lambda: self.events.find_today_sent_by(account.username, today), retries=1)
        received = await self._store(
            lambda: self.events.find_today_received_by(account.username, today), retries=1
        )
        return AccountProfile(account=account, pokes_sent_today=len(sent), pokes_received_today=len(received))
