"""Account store: persistence of registered users."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.database import Database
from gitpoke.db.models import Account
from gitpoke.errors import NotFoundError, TransientDependencyError, UsernameTakenError
from gitpoke.pokes.policy import PokeSetting, UserAccount
from gitpoke.resilience import DATABASE

USERNAME_CONSTRAINT = "uq_accounts_username"


class AccountStore(ABC):
    """Abstract account store capability."""

    @abstractmethod
    async def find_by_username(self, username: Username) -> UserAccount | None:
        ...

    @abstractmethod
    async def find_by_github_id(self, github_id: GitHubUserId) -> UserAccount | None:
        ...

    @abstractmethod
    async def save(self, account: UserAccount) -> None:
        """Insert a new account. Raises UsernameTakenError if another account holds the name."""
        ...

    @abstractmethod
    async def update(self, account: UserAccount) -> UserAccount:
        """Persist changes and bump ``updated_at``. Returns the stored account."""
        ...

    @abstractmethod
    async def release_username(self, account: UserAccount) -> UserAccount:
        """Detach the username from ``account`` so another account can claim it."""
        ...

    @abstractmethod
    async def delete(self, account: UserAccount) -> None:
        ...


def _to_domain(row: Account) -> UserAccount:
    return UserAccount(
        github_id=GitHubUserId(row.github_id),
        username=Username(row.username) if row.username is not None else None,
        poke_setting=PokeSetting(row.poke_setting),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _username_value(account: UserAccount) -> str | None:
    return account.username.value if account.username is not None else None


class SqlAccountStore(AccountStore):
    """PostgreSQL implementation of AccountStore."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def find_by_username(self, username: Username) -> UserAccount | None:
        try:
            async with self.db.session() as session:
                result = await session.execute(select(Account).where(Account.username == username.value))
                row = result.scalar_one_or_none()
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc
        return _to_domain(row) if row else None

    async def find_by_github_id(self, github_id: GitHubUserId) -> UserAccount | None:
        try:
            async with self.db.session() as session:
                row = await session.get(Account, github_id.value)
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc
        return _to_domain(row) if row else None

    async def save(self, account: UserAccount) -> None:
        try:
            async with self.db.session() as session:
                session.add(Account(
                    github_id=account.github_id.value,
                    username=_username_value(account),
                    poke_setting=account.poke_setting.value,
                    created_at=account.created_at,
                    updated_at=account.updated_at,
                ))
                await session.commit()
        except IntegrityError as exc:
            _raise_if_username_taken(exc, account)
            raise
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc

    async def update(self, account: UserAccount) -> UserAccount:
        now = datetime.now(timezone.utc)
        try:
            async with self.db.session() as session:
                row = await session.get(Account, account.github_id.value)
                if row is None:
                    raise NotFoundError("account", str(account.github_id.value))
                row.username = _username_value(account)
                row.poke_setting = account.poke_setting.value
                row.updated_at = now
                await session.commit()
                return _to_domain(row)
        except IntegrityError as exc:
            _raise_if_username_taken(exc, account)
            raise
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc

    async def release_username(self, account: UserAccount) -> UserAccount:
        return await self.update(account.with_username(None))

    async def delete(self, account: UserAccount) -> None:
        try:
            async with self.db.session() as session:
                await session.execute(delete(Account).where(Account.github_id == account.github_id.value))
                await session.commit()
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc


def _raise_if_username_taken(exc: IntegrityError, account: UserAccount) -> None:
    if USERNAME_CONSTRAINT in str(exc.orig) and account.username is not None:
        raise UsernameTakenError(account.username.value) from exc


class InMemoryAccountStore(AccountStore):
    """Dict-backed store that enforces the same username uniqueness as the table."""

    def __init__(self) -> None:
        self.accounts: dict[int, UserAccount] = {}

    def _check_username_free(self, account: UserAccount) -> None:
        if account.username is None:
            return
        for other in self.accounts.values():
            if other.username == account.username and other.github_id != account.github_id:
                raise UsernameTakenError(account.username.value)

    async def find_by_username(self, username: Username) -> UserAccount | None:
        for account in self.accounts.values():
            if account.username == username:
                return account
        return None

    async def find_by_github_id(self, github_id: GitHubUserId) -> UserAccount | None:
        return self.accounts.get(github_id.value)

    async def save(self, account: UserAccount) -> None:
        self._check_username_free(account)
        self.accounts[account.github_id.value] = account

    async def update(self, account: UserAccount) -> UserAccount:
        if account.github_id.value not in self.accounts:
            raise NotFoundError("account", str(account.github_id.value))
        self._check_username_free(account)
        stored = account.with_poke_setting(account.poke_setting, datetime.now(timezone.utc))
        self.accounts[account.github_id.value] = stored
        return stored

    async def release_username(self, account: UserAccount) -> UserAccount:
        return await self.update(account.with_username(None))

    async def delete(self, account: UserAccount) -> None:
        self.accounts.pop(account.github_id.value, None)
