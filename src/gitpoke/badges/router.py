"""Badge endpoints: the embeddable SVG and the preview gallery."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from gitpoke.accounts.identifiers import Username
from gitpoke.badges.renderer import preview_badges
from gitpoke.badges.schemas import BadgePreviewItem, BadgePreviewResponse
from gitpoke.dependencies import AppDependencies, get_deps
from gitpoke.errors import InvalidIdentifier

router = APIRouter(tags=["Badges"])

# Badges are embedded in README files rendered on github.com
BADGE_ALLOWED_ORIGIN = "https://github.com"


def _parse_username(raw: str) -> Username:
    try:
        return Username.parse(raw)
    except InvalidIdentifier as e:
        raise HTTPException(status_code=400, detail=e.reason) from e


@router.get("/badge/{username}.svg")
async def get_badge(
    username: str,
    interactive: bool = Query(False),
    deps: AppDependencies = Depends(get_deps),
) -> Response:
    """Render (or serve from cache) the activity badge for ``username``."""
    result = await deps.badges.get_badge(_parse_username(username), interactive=interactive)
    artifact = result.artifact
    return Response(
        content=artifact.content,
        media_type=artifact.content_type,
        headers={
            "Cache-Control": result.cache_control,
            "X-Cache": result.cache_status,
            "X-Content-Type-Options": "nosniff",
            "Access-Control-Allow-Origin": BADGE_ALLOWED_ORIGIN,
        },
    )


@router.get("/api/v1/badges/preview", response_model=BadgePreviewResponse)
async def badge_preview(username: str = Query("octocat")) -> BadgePreviewResponse:
    """The canonical badge variants, for documentation pages."""
    parsed = _parse_username(username)
    return BadgePreviewResponse(
        username=parsed.value,
        badges=[
            BadgePreviewItem(
                name=name,
                svg=artifact.content,
                cache_ttl_seconds=artifact.cache_ttl_seconds,
                is_interactive=artifact.is_interactive,
            )
            for name, artifact in preview_badges(parsed.value)
        ],
    )
