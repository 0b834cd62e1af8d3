"""Resolve a GitHub access token to the account it belongs to.

The OAuth code exchange happens upstream; this service only receives the
resulting access token and asks GitHub who owns it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.auth.sessions import InvalidSessionError
from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import ORIGIN


class IdentityProvider(ABC):
    @abstractmethod
    async def resolve(self, access_token: str) -> tuple[GitHubUserId, Username]:
        """Return (github id, login). Raises InvalidSessionError for a rejected token."""
        ...


class GitHubIdentityProvider(IdentityProvider):
    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def resolve(self, access_token: str) -> tuple[GitHubUserId, Username]:
        try:
            response = await self.client.get("/user", headers={"Authorization": f"Bearer {access_token}"})
        except httpx.HTTPError as exc:
            raise TransientDependencyError(ORIGIN, str(exc)) from exc
        if response.status_code in (401, 403):
            raise InvalidSessionError("GitHub rejected the access token")
        if response.status_code != 200:
            raise TransientDependencyError(ORIGIN, f"GitHub responded {response.status_code}")
        data = response.json()
        return GitHubUserId(int(data["id"])), Username(data["login"])


class StaticIdentityProvider(IdentityProvider):
    """Maps fixed tokens to identities, for local runs and tests."""

    def __init__(self, identities: dict[str, tuple[int, str]] | None = None) -> None:
        self.identities = dict(identities or {})

    def register(self, token: str, github_id: int, login: str) -> None:
        self.identities[token] = (github_id, login)

    async def resolve(self, access_token: str) -> tuple[GitHubUserId, Username]:
        try:
            github_id, login = self.identities[access_token]
        except KeyError:
            raise InvalidSessionError("Unknown access token") from None
        return GitHubUserId(github_id), Username(login)
