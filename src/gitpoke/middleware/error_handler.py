"""Global error handler: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gitpoke.auth.sessions import InvalidSessionError
from gitpoke.errors import (
    InvalidIdentifier,
    NotFoundError,
    SelfPokeError,
    TransientDependencyError,
    UsernameTakenError,
)

logger = structlog.get_logger()

# Seconds a client should wait after a 503 from a failing dependency
TRANSIENT_RETRY_AFTER = 5


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    @app.exception_handler(InvalidIdentifier)
    async def invalid_identifier_handler(_request: Request, exc: InvalidIdentifier) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.reason})

    @app.exception_handler(SelfPokeError)
    async def self_poke_handler(_request: Request, exc: SelfPokeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(UsernameTakenError)
    async def username_taken_handler(_request: Request, exc: UsernameTakenError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InvalidSessionError)
    async def invalid_session_handler(_request: Request, exc: InvalidSessionError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc) or "Not authenticated"})

    @app.exception_handler(TransientDependencyError)
    async def transient_dependency_handler(request: Request, exc: TransientDependencyError) -> JSONResponse:
        logger.warning("request_failed_dependency", path=request.url.path, dependency=exc.dependency)
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable", "dependency": exc.dependency},
            headers={"Retry-After": str(TRANSIENT_RETRY_AFTER)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
