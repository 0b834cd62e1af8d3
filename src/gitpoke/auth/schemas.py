"""Pydantic schemas for auth endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GitHubLoginRequest(BaseModel):
    access_token: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    username: str
    github_id: int
