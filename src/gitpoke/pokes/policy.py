"""Poke authorization: recipient preference + follow relation -> verdict.

``authorize`` is pure and total. The sender != recipient rule is enforced by
the caller before this module is reached.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum

from gitpoke.accounts.identifiers import GitHubUserId, Username


class PokeSetting(str, Enum):
    ANYONE = "anyone"
    FOLLOWERS_ONLY = "followers_only"
    MUTUAL_ONLY = "mutual_only"
    DISABLED = "disabled"

    @property
    def is_enabled(self) -> bool:
        return self is not PokeSetting.DISABLED


class FollowRelation(str, Enum):
    """Relation of the sender to the recipient in the social graph."""

    NONE = "none"
    FOLLOWER = "follower"
    MUTUAL = "mutual"

    @property
    def is_follower(self) -> bool:
        return self in (FollowRelation.FOLLOWER, FollowRelation.MUTUAL)

    @property
    def is_mutual(self) -> bool:
        return self is FollowRelation.MUTUAL


class PokeFailureReason(str, Enum):
    RECIPIENT_NOT_REGISTERED = "recipient_not_registered"
    RECIPIENT_DISABLED = "recipient_disabled"
    NOT_FOLLOWER = "not_follower"
    NOT_MUTUAL_FOLLOWER = "not_mutual_follower"
    ALREADY_POKED = "already_poked"
    RATE_LIMITED = "rate_limited"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    PokeFailureReason.RECIPIENT_NOT_REGISTERED: "The recipient is not registered",
    PokeFailureReason.RECIPIENT_DISABLED: "The recipient has disabled pokes",
    PokeFailureReason.NOT_FOLLOWER: "Only followers can poke this user",
    PokeFailureReason.NOT_MUTUAL_FOLLOWER: "Only mutual followers can poke this user",
    PokeFailureReason.ALREADY_POKED: "You already poked this user today",
    PokeFailureReason.RATE_LIMITED: "Too many pokes. Try again later.",
}


@dataclass(frozen=True, slots=True)
class UserAccount:
    """A registered user. ``github_id`` is fixed; the username may drift.

    ``username`` is None once another account has claimed the name on login;
    the next login of this account restores its current name.
    """

    github_id: GitHubUserId
    username: Username | None
    poke_setting: PokeSetting = PokeSetting.ANYONE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def with_poke_setting(self, setting: PokeSetting, now: datetime | None = None) -> UserAccount:
        return replace(self, poke_setting=setting, updated_at=now or datetime.now(timezone.utc))

    def with_username(self, username: Username | None, now: datetime | None = None) -> UserAccount:
        return replace(self, username=username, updated_at=now or datetime.now(timezone.utc))


# --- Verdicts ---


@dataclass(frozen=True, slots=True)
class CanPoke:
    sender: Username
    recipient: Username


@dataclass(frozen=True, slots=True)
class CannotPoke:
    reason: PokeFailureReason


Verdict = CanPoke | CannotPoke


def authorize(sender: Username, recipient: UserAccount, relation: FollowRelation) -> Verdict:
    """Evaluate the recipient's poke setting against the follow relation.

    First match wins: Disabled denies everyone, Anyone allows everyone,
    FollowersOnly needs Follower or Mutual, MutualOnly needs Mutual.
    """
    match recipient.poke_setting:
        case PokeSetting.DISABLED:
            return CannotPoke(PokeFailureReason.RECIPIENT_DISABLED)
        case PokeSetting.ANYONE:
            pass
        case PokeSetting.FOLLOWERS_ONLY:
            if not relation.is_follower:
                return CannotPoke(PokeFailureReason.NOT_FOLLOWER)
        case PokeSetting.MUTUAL_ONLY:
            if not relation.is_mutual:
                return CannotPoke(PokeFailureReason.NOT_MUTUAL_FOLLOWER)
        case _:
            raise TypeError(f"Unknown poke setting: {recipient.poke_setting!r}")
    return CanPoke(sender=sender, recipient=recipient.username)


# --- Events ---


@dataclass(frozen=True, slots=True)
class PokeEvent:
    """An accepted poke. Append-only; never mutated after creation."""

    id: uuid.UUID
    sender: Username
    recipient: Username
    occurred_at: datetime
    context: str | None = None

    @classmethod
    def from_verdict(
        cls,
        verdict: CanPoke,
        *,
        context: str | None = None,
        now: datetime | None = None,
    ) -> PokeEvent:
        """Create an event. Only a CanPoke verdict can produce one."""
        return cls(
            id=uuid.uuid4(),
            sender=verdict.sender,
            recipient=verdict.recipient,
            occurred_at=now or datetime.now(timezone.utc),
            context=context,
        )

    @property
    def utc_date(self) -> date:
        return self.occurred_at.astimezone(timezone.utc).date()

    @property
    def idempotency_key(self) -> tuple[str, str, date]:
        return (self.sender.value, self.recipient.value, self.utc_date)

    def is_duplicate_of(self, other: PokeEvent) -> bool:
        """Same sender, same recipient, same UTC calendar day."""
        return self.idempotency_key == other.idempotency_key
