"""Per-IP fixed-window rate limit for badge fetches.

Pokes carry their own IP gate inside the poke use case; this middleware only
guards the public badge endpoint, which is hit by image proxies.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from gitpoke.errors import TransientDependencyError

logger = structlog.get_logger()

_LIMITED_PREFIX = "/badge/"


def resolve_client_ip(forwarded: str | None, peer: str, trusted_hops: int) -> str:
    """Client address as seen by the outermost trusted proxy.

    Each trusted proxy appends the address it received the request from, so
    with N trusted hops the client is the Nth entry from the right. Entries to
    the left of it are client-supplied and ignored.
    """
    if trusted_hops <= 0 or not forwarded:
        return peer
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    if not hops:
        return peer
    return hops[-min(trusted_hops, len(hops))]


def client_ip(request: Request) -> str:
    peer = request.client.host if request.client else "unknown"
    trusted_hops = request.app.state.settings.trusted_proxy_hops
    return resolve_client_ip(request.headers.get("X-Forwarded-For"), peer, trusted_hops)


class BadgeRateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit badge requests per IP using the hot-cache counter."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit, return 429 if exceeded."""
        deps = getattr(request.app.state, "deps", None)
        if deps is None or not request.url.path.startswith(_LIMITED_PREFIX):
            return await call_next(request)

        limiter = deps.badge_limiter
        try:
            decision = await limiter.hit(client_ip(request))
        except TransientDependencyError:
            # badges are read-only; an unreachable counter lets the request through
            logger.warning("badge_rate_limit_unavailable")
            return await call_next(request)

        if not decision.allowed:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={
                    "Retry-After": str(decision.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(decision.limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        return response
