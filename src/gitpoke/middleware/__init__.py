"""Middleware registration."""

from fastapi import FastAPI

from gitpoke.config import Settings
from gitpoke.middleware.cors import setup_cors
from gitpoke.middleware.error_handler import setup_error_handlers
from gitpoke.middleware.logging import setup_logging
from gitpoke.middleware.rate_limit import BadgeRateLimitMiddleware
from gitpoke.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(BadgeRateLimitMiddleware)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)  # added last → outermost → wraps 429 responses
