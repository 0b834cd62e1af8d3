"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from gitpoke.pokes.policy import PokeSetting


class UserProfileResponse(BaseModel):
    github_id: int
    username: str
    poke_setting: PokeSetting
    created_at: datetime
    updated_at: datetime
    pokes_sent_today: int
    pokes_received_today: int


class UpdateSettingsRequest(BaseModel):
    poke_setting: PokeSetting


class UserSettingsResponse(BaseModel):
    username: str
    poke_setting: PokeSetting
    updated_at: datetime
