"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from gitpoke.accounts.router import router as accounts_router
from gitpoke.auth.router import router as auth_router
from gitpoke.badges.router import router as badges_router
from gitpoke.config import Settings, get_settings
from gitpoke.dependencies import AppDependencies
from gitpoke.health.router import router as health_router
from gitpoke.middleware import setup_middleware
from gitpoke.pokes.router import router as pokes_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the dependency container on startup, close it on shutdown.

    A container already placed on ``app.state.deps`` (tests) is used as is.
    """
    owned = getattr(app.state, "deps", None) is None
    if owned:
        app.state.deps = AppDependencies.from_settings(app.state.settings)
    logger.info("startup", backend=app.state.settings.storage_backend)

    yield

    await app.state.deps.background.drain()
    if owned:
        await app.state.deps.close()
        app.state.deps = None


def create_app(settings: Settings | None = None, deps: AppDependencies | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="GitPoke API",
        description="Activity badges and pokes for GitHub users",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.deps = deps

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(badges_router)
    app.include_router(pokes_router)
    app.include_router(auth_router)
    app.include_router(accounts_router)

    return app


app = create_app()
