"""Poke endpoints: send, check, and today's history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from gitpoke.accounts.identifiers import Username
from gitpoke.auth.dependencies import get_current_account
from gitpoke.dependencies import AppDependencies, get_deps
from gitpoke.errors import InvalidIdentifier
from gitpoke.middleware.rate_limit import client_ip
from gitpoke.pokes.policy import CannotPoke, PokeEvent, PokeFailureReason, UserAccount
from gitpoke.pokes.schemas import (
    PokeCheckResponse,
    PokeDetails,
    PokeEventResponse,
    PokeHistoryResponse,
    PokeRequest,
    PokeResponse,
)

router = APIRouter(prefix="/api/v1/poke", tags=["Pokes"])


# ── Helpers ──


def _parse_recipient(raw: str) -> Username:
    try:
        return Username.parse(raw)
    except InvalidIdentifier as e:
        raise HTTPException(status_code=400, detail="Invalid recipient username") from e


def _event_response(event: PokeEvent) -> PokeEventResponse:
    return PokeEventResponse(
        id=str(event.id),
        from_=event.sender.value,
        to=event.recipient.value,
        timestamp=event.occurred_at,
        repository=event.context,
    )


# ── Routes ──


@router.post("", response_model=PokeResponse, response_model_by_alias=True)
async def send_poke(
    body: PokeRequest,
    request: Request,
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> PokeResponse | JSONResponse:
    """Poke another user.

    Policy denials are a 200 with ``success: false``; only the IP rate
    limit maps to 429.
    """
    recipient = _parse_recipient(body.username)
    result = await deps.pokes.poke(
        account.username,
        recipient,
        client_ip=client_ip(request),
        context=body.repository,
    )

    if result.success and result.event is not None:
        event = result.event
        return PokeResponse(
            success=True,
            message=result.message,
            event_id=str(event.id),
            details=PokeDetails(
                from_=event.sender.value,
                to=event.recipient.value,
                timestamp=event.occurred_at,
                repository=event.context,
            ),
        )

    envelope = PokeResponse(success=False, message=result.message, reason=result.reason.value)
    if result.reason is PokeFailureReason.RATE_LIMITED:
        window = deps.poke_limiter.window_seconds
        return JSONResponse(
            status_code=429,
            content=envelope.model_dump(by_alias=True, exclude_none=True),
            headers={"Retry-After": str(window)},
        )
    return envelope


@router.get("/check/{username}", response_model=PokeCheckResponse)
async def check_poke(
    username: str,
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> PokeCheckResponse:
    """Report whether a poke to ``username`` would be accepted right now."""
    recipient = _parse_recipient(username)
    verdict = await deps.pokes.preview(account.username, recipient)
    if isinstance(verdict, CannotPoke):
        return PokeCheckResponse(can_poke=False, reason=verdict.reason.value, message=verdict.reason.message)
    return PokeCheckResponse(can_poke=True, message=f"You can poke {verdict.recipient.value}")


@router.get("/history", response_model=PokeHistoryResponse, response_model_by_alias=True)
async def poke_history(
    account: UserAccount = Depends(get_current_account),
    deps: AppDependencies = Depends(get_deps),
) -> PokeHistoryResponse:
    """Pokes sent and received by the current user today (UTC)."""
    history = await deps.pokes.today_history(account.username)
    return PokeHistoryResponse(
        sent=[_event_response(e) for e in history.sent],
        received=[_event_response(e) for e in history.received],
    )
