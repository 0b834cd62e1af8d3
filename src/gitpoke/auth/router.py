"""Auth endpoints: exchange a GitHub access token for a session, log out."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from gitpoke.auth.dependencies import get_session_claims
from gitpoke.auth.schemas import GitHubLoginRequest, SessionResponse
from gitpoke.auth.sessions import InvalidSessionError, SessionClaims
from gitpoke.dependencies import AppDependencies, get_deps

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/github", response_model=SessionResponse)
async def login_with_github(
    body: GitHubLoginRequest,
    deps: AppDependencies = Depends(get_deps),
) -> SessionResponse:
    """Resolve the token's owner, register or refresh the account, open a session."""
    try:
        github_id, username = await deps.identity.resolve(body.access_token)
    except InvalidSessionError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    account = await deps.accounts.register_or_update(github_id, username)
    token = await deps.sessions.issue(account)
    return SessionResponse(token=token, username=account.username.value, github_id=account.github_id.value)


@router.post("/logout", status_code=204)
async def logout(
    claims: SessionClaims = Depends(get_session_claims),
    deps: AppDependencies = Depends(get_deps),
) -> None:
    await deps.sessions.revoke(claims)
