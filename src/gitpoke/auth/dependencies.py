"""FastAPI authentication dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gitpoke.auth.sessions import InvalidSessionError, SessionClaims
from gitpoke.dependencies import AppDependencies, get_deps
from gitpoke.pokes.policy import UserAccount

_bearer = HTTPBearer(auto_error=False)


async def get_session_claims(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    deps: AppDependencies = Depends(get_deps),
) -> SessionClaims:
    """Verify the bearer token and that its session has not been revoked."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        return await deps.sessions.authenticate(credentials.credentials)
    except InvalidSessionError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"}) from e


async def get_current_account(
    claims: SessionClaims = Depends(get_session_claims),
    deps: AppDependencies = Depends(get_deps),
) -> UserAccount:
    """Resolve the session to its account. Raises 401 if the account is gone or lost its name."""
    account = await deps.accounts_store.find_by_github_id(claims.github_id)
    if account is None or account.username != claims.username:
        raise HTTPException(status_code=401, detail="User not found")
    return account
