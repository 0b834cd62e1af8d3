"""Validated identifiers: GitHub usernames and numeric account ids.

Construction is the only validation point. Anything typed ``Username`` or
``GitHubUserId`` past the HTTP boundary is known to be well-formed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gitpoke.errors import InvalidIdentifier

USERNAME_MIN_LENGTH = 1
USERNAME_MAX_LENGTH = 39

_USERNAME_CHARS = re.compile(r"[A-Za-z0-9-]+")

_INT64_MAX = 2**63 - 1


@dataclass(frozen=True, slots=True)
class Username:
    """A GitHub login: 1-39 ASCII alphanumerics or single inner hyphens."""

    value: str

    def __post_init__(self) -> None:
        _validate_username(self.value)

    @classmethod
    def parse(cls, raw: str) -> Username:
        return cls(raw)

    def __str__(self) -> str:
        return self.value


def _validate_username(value: object) -> None:
    if not isinstance(value, str) or not value:
        raise InvalidIdentifier(value, "username is required")
    if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
        raise InvalidIdentifier(value, f"username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters")
    if not _USERNAME_CHARS.fullmatch(value):
        raise InvalidIdentifier(value, "username may only contain ASCII letters, digits and hyphens")
    if value.startswith("-") or value.endswith("-"):
        raise InvalidIdentifier(value, "username cannot start or end with a hyphen")
    if "--" in value:
        raise InvalidIdentifier(value, "username cannot contain consecutive hyphens")


@dataclass(frozen=True, slots=True)
class GitHubUserId:
    """Stable numeric GitHub account id; survives username renames."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidIdentifier(self.value, "github id must be an integer")
        if not 0 < self.value <= _INT64_MAX:
            raise InvalidIdentifier(self.value, "github id must be a positive 64-bit integer")

    def __int__(self) -> int:
        return self.value
