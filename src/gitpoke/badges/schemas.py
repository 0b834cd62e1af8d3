"""Pydantic schemas for badge endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class BadgePreviewItem(BaseModel):
    name: str
    svg: str
    cache_ttl_seconds: int
    is_interactive: bool


class BadgePreviewResponse(BaseModel):
    username: str
    badges: list[BadgePreviewItem]
