"""CORS for the JSON API.

Badge images need no CORS: ``<img>`` loads are not subject to it, and the
badge route sets ``Access-Control-Allow-Origin: https://github.com`` itself
for fetch-based previews.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gitpoke.config import Settings

# Routes only use these; PATCH is not served
_API_METHODS = ["GET", "POST", "PUT", "DELETE"]
_API_REQUEST_HEADERS = ["Authorization", "Content-Type", "X-Request-Id"]
_EXPOSED_HEADERS = ["X-Request-Id", "X-Cache", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Let the configured web frontends call the API with bearer sessions."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=_API_METHODS,
        allow_headers=_API_REQUEST_HEADERS,
        expose_headers=_EXPOSED_HEADERS,
        max_age=settings.cors_max_age_seconds,
    )
