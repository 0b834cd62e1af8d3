"""Health, readiness, and version endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gitpoke.dependencies import AppDependencies, get_deps
from gitpoke.resilience import DURABLE_STORE, HOT_CACHE, ORIGIN, call_with_timeout

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(deps: AppDependencies = Depends(get_deps)) -> dict[str, object]:  # noqa: B008
    """Readiness probe: hot cache, durable store and GitHub reachability, each time-bounded."""
    s = deps.settings
    probes = {
        "redis": (HOT_CACHE, deps.hot.ping, s.hot_cache_timeout_seconds),
        "storage": (DURABLE_STORE, deps.cold.ping, s.durable_store_timeout_seconds),
        "github": (ORIGIN, deps.origin.ping, s.origin_timeout_seconds),
    }
    checks: dict[str, object] = {}
    for name, (dependency, ping, timeout) in probes.items():
        try:
            ok = await call_with_timeout(dependency, ping, timeout)
            checks[name] = "ok" if ok else "error: unhealthy"
        except Exception as exc:  # noqa: BLE001
            checks[name] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(deps: AppDependencies = Depends(get_deps)) -> dict[str, str]:
    """Return API version and environment."""
    return {
        "version": deps.settings.app_version,
        "environment": deps.settings.environment,
    }
