"""Activity classification: raw activity timestamps to a discrete state."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone

from gitpoke.accounts.identifiers import Username

# Days assumed when a user has no recorded public activity at all.
UNKNOWN_ACTIVITY_DAYS = 365

ACTIVE_WEEK_MAX_DAYS = 7
INACTIVE_MONTH_MAX_DAYS = 30

DEFAULT_ACTIVE_TTL_SECONDS = 300
DEFAULT_INACTIVE_TTL_SECONDS = 3600


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """Snapshot of a user's public activity as reported by the origin."""

    username: Username
    last_activity_at: datetime | None
    current_streak_days: int | None
    fetched_at: datetime

    def to_json(self) -> str:
        return json.dumps({
            "username": self.username.value,
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "current_streak_days": self.current_streak_days,
            "fetched_at": self.fetched_at.isoformat(),
        })

    @classmethod
    def from_json(cls, raw: str) -> ActivityRecord:
        data = json.loads(raw)
        last = data.get("last_activity_at")
        return cls(
            username=Username(data["username"]),
            last_activity_at=datetime.fromisoformat(last) if last else None,
            current_streak_days=data.get("current_streak_days"),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )


# --- Activity states ---


@dataclass(frozen=True, slots=True)
class ActiveToday:
    days_ago: int = 0


@dataclass(frozen=True, slots=True)
class ActiveThisWeek:
    days_ago: int


@dataclass(frozen=True, slots=True)
class InactiveThisMonth:
    days_ago: int


@dataclass(frozen=True, slots=True)
class LongInactive:
    days_ago: int


ActivityState = ActiveToday | ActiveThisWeek | InactiveThisMonth | LongInactive


def is_active(state: ActivityState) -> bool:
    """True for ActiveToday and ActiveThisWeek."""
    match state:
        case ActiveToday() | ActiveThisWeek():
            return True
        case InactiveThisMonth() | LongInactive():
            return False
    raise TypeError(f"Unknown activity state: {state!r}")


def should_poke(state: ActivityState) -> bool:
    return not is_active(state)


def days_inactive(record: ActivityRecord, now: datetime | None = None) -> int:
    """Whole days since the last activity, clamped at zero."""
    if record.last_activity_at is None:
        return UNKNOWN_ACTIVITY_DAYS
    if now is None:
        now = datetime.now(timezone.utc)
    return max(0, (now - record.last_activity_at).days)


def classify(record: ActivityRecord, now: datetime | None = None) -> ActivityState:
    """Map an activity record to its state. Total: never raises."""
    days = days_inactive(record, now)
    if days == 0:
        return ActiveToday()
    if days <= ACTIVE_WEEK_MAX_DAYS:
        return ActiveThisWeek(days_ago=days)
    if days <= INACTIVE_MONTH_MAX_DAYS:
        return InactiveThisMonth(days_ago=days)
    return LongInactive(days_ago=days)


def activity_cache_ttl(
    record: ActivityRecord,
    now: datetime | None = None,
    *,
    active_ttl: int = DEFAULT_ACTIVE_TTL_SECONDS,
    inactive_ttl: int = DEFAULT_INACTIVE_TTL_SECONDS,
) -> int:
    """Hot-cache TTL for an activity record: recent activity changes sooner."""
    if days_inactive(record, now) <= ACTIVE_WEEK_MAX_DAYS:
        return active_ttl
    return inactive_ttl
