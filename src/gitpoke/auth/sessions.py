"""
HS256 session tokens bound to a revocable hot-cache record.

A token is valid only while ``session:{sid}:{username}`` exists in the hot
cache, so deleting an account (or renaming it) can revoke every session with
one pattern delete.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import structlog

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.cache.hot import HotCache
from gitpoke.errors import GitPokeError
from gitpoke.pokes.policy import UserAccount
from gitpoke.resilience import HOT_CACHE, call_with_timeout

logger = structlog.get_logger()


class InvalidSessionError(GitPokeError):
    """Token is malformed, expired, or its session was revoked."""


def session_key(sid: str, username: Username) -> str:
    return f"session:{sid}:{username.value}"


@dataclass(frozen=True, slots=True)
class SessionClaims:
    sid: str
    github_id: GitHubUserId
    username: Username
    expires_at: datetime


class SessionManager:
    def __init__(
        self,
        hot: HotCache,
        *,
        secret: str,
        algorithm: str = "HS256",
        ttl_hours: int = 168,
        issuer: str = "gitpoke",
        timeout: float = 1.0,
    ) -> None:
        self.hot = hot
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(hours=ttl_hours)
        self.issuer = issuer
        self.timeout = timeout

    async def issue(self, account: UserAccount) -> str:
        """
        Create a session for ``account`` and return its signed token.

        Args:
            account: The logged-in account.

        Returns:
            Encoded JWT string.
        """
        now = datetime.now(timezone.utc)
        sid = uuid.uuid4().hex
        payload: dict[str, Any] = {
            "sub": str(account.github_id.value),
            "username": account.username.value,
            "sid": sid,
            "iat": now,
            "exp": now + self.ttl,
            "iss": self.issuer,
        }
        token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
        key = session_key(sid, account.username)
        ttl_seconds = int(self.ttl.total_seconds())
        await call_with_timeout(
            HOT_CACHE, lambda: self.hot.set(key, str(account.github_id.value), ttl_seconds), self.timeout
        )
        logger.info("session_issued", username=account.username.value, sid=sid)
        return token

    def decode(self, token: str) -> SessionClaims:
        """Verify signature, expiry and issuer. Does not consult the hot cache."""
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["sub", "sid", "exp", "iss"]},
            )
            return SessionClaims(
                sid=payload["sid"],
                github_id=GitHubUserId(int(payload["sub"])),
                username=Username(payload["username"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
            raise InvalidSessionError(str(exc)) from exc

    async def authenticate(self, token: str) -> SessionClaims:
        claims = self.decode(token)
        key = session_key(claims.sid, claims.username)
        stored = await call_with_timeout(HOT_CACHE, lambda: self.hot.get(key), self.timeout, retries=1)
        if stored is None or stored != str(claims.github_id.value):
            raise InvalidSessionError("Session revoked")
        return claims

    async def revoke(self, claims: SessionClaims) -> None:
        key = session_key(claims.sid, claims.username)
        await call_with_timeout(HOT_CACHE, lambda: self.hot.delete(key), self.timeout, retries=1)

    async def revoke_all(self, username: Username) -> int:
        pattern = f"session:*:{username.value}"
        deleted = await call_with_timeout(
            HOT_CACHE, lambda: self.hot.delete_by_pattern(pattern), self.timeout, retries=1
        )
        logger.info("sessions_revoked", username=username.value, count=deleted)
        return deleted
