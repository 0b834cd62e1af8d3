"""Pydantic schemas for poke endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PokeRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=39)
    repository: str | None = Field(None, max_length=200)


class PokeDetails(BaseModel):
    from_: str = Field(..., serialization_alias="from")
    to: str
    timestamp: datetime
    repository: str | None = None


class PokeResponse(BaseModel):
    success: bool
    message: str
    reason: str | None = None
    event_id: str | None = None
    details: PokeDetails | None = None


class PokeCheckResponse(BaseModel):
    can_poke: bool
    reason: str | None = None
    message: str


class PokeEventResponse(BaseModel):
    id: str
    from_: str = Field(..., serialization_alias="from")
    to: str
    timestamp: datetime
    repository: str | None = None


class PokeHistoryResponse(BaseModel):
    sent: list[PokeEventResponse]
    received: list[PokeEventResponse]
