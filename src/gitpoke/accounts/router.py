"""User endpoints: profile, poke settings, account deletion."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gitpoke.accounts.schemas import UpdateSettingsRequest, UserProfileResponse, UserSettingsResponse
from gitpoke.auth.dependencies import get_current_account
from gitpoke.dependencies import AppDependencies, get_deps
from gitpoke.pokes.policy import UserAccount

router = APIRouter(prefix="/api/v1/user", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> UserProfileResponse:
    profile = await deps.accounts.profile(account)
    return UserProfileResponse(
        github_id=account.github_id.value,
        username=account.username.value,
        poke_setting=account.poke_setting,
        created_at=account.created_at,
        updated_at=account.updated_at,
        pokes_sent_today=profile.pokes_sent_today,
        pokes_received_today=profile.pokes_received_today,
    )


@router.put("/settings", response_model=UserSettingsResponse)
async def update_settings(
    body: UpdateSettingsRequest,
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> UserSettingsResponse:
    """Change who may poke the current user. Cached badges are invalidated."""
    updated = await deps.accounts.update_poke_setting(account, body.poke_setting)
    return UserSettingsResponse(
        username=updated.username.value,
        poke_setting=updated.poke_setting,
        updated_at=updated.updated_at,
    )


@router.delete("/me", status_code=204)
async def delete_me(
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> None:
    """Delete the account, its cached artifacts and all of its sessions."""
    await deps.accounts.delete_account(account)
