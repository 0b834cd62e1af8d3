"""Badge rendering: activity state + poke eligibility -> SVG artifact + cache policy.

Pure. Caching the artifact is the caller's job (see gitpoke.cache.coordinator).
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from gitpoke.activity.classifier import ActivityState, is_active

CONTENT_TYPE = "image/svg+xml"
STALE_WHILE_REVALIDATE_SECONDS = 86400

ACTIVE_COLOR = "#44cc11"
INACTIVE_COLOR = "#e05d44"
NOT_FOUND_COLOR = "#9f9f9f"

ACTIVE_TTL_SECONDS = 300
INACTIVE_TTL_SECONDS = 3600
NOT_FOUND_TTL_SECONDS = 86400

DEFAULT_POKE_ACTION_BASE_URL = "https://gitpoke.dev/poke"


# --- Badge states ---


@dataclass(frozen=True, slots=True)
class ActiveBadge:
    days_since_last_activity: int
    streak_days: int | None = None


@dataclass(frozen=True, slots=True)
class InactiveBadge:
    days_since_last_activity: int
    pokeable: bool


@dataclass(frozen=True, slots=True)
class NotFoundBadge:
    pass


BadgeState = ActiveBadge | InactiveBadge | NotFoundBadge


def badge_state_for(
    activity_state: ActivityState | None,
    *,
    poke_eligible: bool,
    streak_days: int | None = None,
) -> BadgeState:
    """Collapse the four activity states into the three badge states.

    ``None`` means the identifier resolved to no GitHub user.
    """
    if activity_state is None:
        return NotFoundBadge()
    if is_active(activity_state):
        return ActiveBadge(days_since_last_activity=activity_state.days_ago, streak_days=streak_days)
    return InactiveBadge(days_since_last_activity=activity_state.days_ago, pokeable=poke_eligible)


def badge_color(state: BadgeState) -> str:
    match state:
        case ActiveBadge():
            return ACTIVE_COLOR
        case InactiveBadge():
            return INACTIVE_COLOR
        case NotFoundBadge():
            return NOT_FOUND_COLOR
    raise TypeError(f"Unknown badge state: {state!r}")


def badge_ttl(state: BadgeState) -> int:
    match state:
        case ActiveBadge():
            return ACTIVE_TTL_SECONDS
        case InactiveBadge():
            return INACTIVE_TTL_SECONDS
        case NotFoundBadge():
            return NOT_FOUND_TTL_SECONDS
    raise TypeError(f"Unknown badge state: {state!r}")


def badge_text(state: BadgeState) -> str:
    match state:
        case ActiveBadge(days_since_last_activity=0):
            return "Active today"
        case ActiveBadge(days_since_last_activity=days):
            return f"Active {days} days ago"
        case InactiveBadge(days_since_last_activity=days):
            return f"Inactive for {days} days"
        case NotFoundBadge():
            return "User not found"
    raise TypeError(f"Unknown badge state: {state!r}")


# --- Artifact ---


@dataclass(frozen=True, slots=True)
class BadgeArtifact:
    content: str
    cache_ttl_seconds: int
    is_interactive: bool

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE

    @property
    def cache_control(self) -> str:
        return f"public, max-age={self.cache_ttl_seconds}, stale-while-revalidate={STALE_WHILE_REVALIDATE_SECONDS}"

    def to_json(self) -> str:
        return json.dumps({
            "content": self.content,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "is_interactive": self.is_interactive,
        })

    @classmethod
    def from_json(cls, raw: str | bytes) -> BadgeArtifact:
        data = json.loads(raw)
        return cls(
            content=data["content"],
            cache_ttl_seconds=int(data["cache_ttl_seconds"]),
            is_interactive=bool(data["is_interactive"]),
        )


_SVG_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="20" role="img" aria-label="GitPoke: {text}">'
    '<title>GitPoke: {text}</title>'
    '<rect width="200" height="20" rx="3" fill="{color}"/>'
    '<text x="10" y="14" fill="#fff" font-family="Verdana,Geneva,sans-serif" font-size="11">GitPoke: {text}</text>'
    "</svg>"
)

_INTERACTIVE_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
    'width="200" height="20" role="img" aria-label="GitPoke: {text}">'
    '<title>GitPoke: {text} (click to poke)</title>'
    '<a xlink:href="{action_url}" href="{action_url}" target="_blank" data-gitpoke-action="poke">'
    '<rect width="200" height="20" rx="3" fill="{color}"/>'
    '<text x="10" y="14" fill="#fff" font-family="Verdana,Geneva,sans-serif" font-size="11">GitPoke: {text} → Poke</text>'
    "</a></svg>"
)


def render(
    state: BadgeState,
    *,
    username: str,
    interactive_requested: bool = False,
    action_base_url: str = DEFAULT_POKE_ACTION_BASE_URL,
) -> BadgeArtifact:
    """Render a badge state. Interactive only for an Inactive, pokeable state."""
    color = badge_color(state)
    text = badge_text(state)
    interactive = interactive_requested and isinstance(state, InactiveBadge) and state.pokeable
    if interactive:
        content = _INTERACTIVE_TEMPLATE.format(
            text=text,
            color=color,
            action_url=f"{action_base_url.rstrip('/')}/{username}",
        )
    else:
        content = _SVG_TEMPLATE.format(text=text, color=color)
    return BadgeArtifact(content=content, cache_ttl_seconds=badge_ttl(state), is_interactive=interactive)


def render_badge(
    username: str,
    activity_state: ActivityState | None,
    *,
    poke_eligible: bool,
    interactive_requested: bool,
    streak_days: int | None = None,
    action_base_url: str = DEFAULT_POKE_ACTION_BASE_URL,
) -> BadgeArtifact:
    """Derive the badge state from the activity state and render it."""
    state = badge_state_for(activity_state, poke_eligible=poke_eligible, streak_days=streak_days)
    return render(
        state,
        username=username,
        interactive_requested=interactive_requested,
        action_base_url=action_base_url,
    )


def preview_badges(username: str = "octocat") -> list[tuple[str, BadgeArtifact]]:
    """The canonical badge variants, for documentation pages."""
    return [
        ("Active Today", render(ActiveBadge(0, streak_days=42), username=username)),
        (
            "Inactive (Pokeable)",
            render(InactiveBadge(14, pokeable=True), username=username, interactive_requested=True),
        ),
        ("Inactive (Not Pokeable)", render(InactiveBadge(30, pokeable=False), username=username)),
        ("User Not Found", render(NotFoundBadge(), username=username)),
    ]
