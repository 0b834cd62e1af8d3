"""Exception taxonomy.

Policy denials are not exceptions: the authorization and anti-abuse gates
return typed results (see ``gitpoke.pokes.service.PokeResult``). The
exceptions below cover malformed input, missing resources, failing
dependencies and the duplicate-event race at the persistence layer.
"""

from __future__ import annotations


class GitPokeError(Exception):
    """Base class for all domain errors."""


class InvalidIdentifier(GitPokeError, ValueError):
    """A username or GitHub id failed validation."""

    def __init__(self, value: object, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid identifier {value!r}: {reason}")


class SelfPokeError(GitPokeError):
    """Sender and recipient are the same account."""

    def __init__(self) -> None:
        super().__init__("Cannot poke yourself")


class NotFoundError(GitPokeError):
    """An identifier resolves to no account or activity."""

    def __init__(self, what: str, key: str) -> None:
        self.what = what
        self.key = key
        super().__init__(f"{what} not found: {key}")


class TransientDependencyError(GitPokeError):
    """An external dependency timed out or was unreachable."""

    def __init__(self, dependency: str, detail: str = "") -> None:
        self.dependency = dependency
        self.detail = detail
        message = f"{dependency} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PokeConflictError(GitPokeError):
    """A poke for the same (sender, recipient, UTC date) was already persisted."""

    def __init__(self, sender: str, recipient: str) -> None:
        self.sender = sender
        self.recipient = recipient
        super().__init__(f"{sender} already poked {recipient} today")


class UsernameTakenError(GitPokeError):
    """Another account still holds the username (lost a concurrent login race)."""

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"username already registered to another account: {username}")
