"""Health, readiness, version and middleware behavior."""

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_ready_all_ok(client: AsyncClient) -> None:
    data = (await client.get("/ready")).json()
    assert data["status"] == "ready"
    assert data["checks"] == {"redis": "ok", "storage": "ok", "github": "ok"}


async def test_ready_degraded(client: AsyncClient, deps) -> None:
    async def broken() -> bool:
        raise ConnectionError("redis down")

    deps.hot.ping = broken
    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["redis"].startswith("error")


async def test_version(client: AsyncClient) -> None:
    data = (await client.get("/version")).json()
    assert data["version"] == "0.1.0"


async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_health_not_rate_limited(client: AsyncClient) -> None:
    for _ in range(150):
        assert (await client.get("/health")).status_code == 200


async def test_unknown_route_is_json(client: AsyncClient) -> None:
    response = await client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


async def test_unsafe_request_id_replaced(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
    assert response.headers["x-request-id"] != "bad id with spaces"
    assert len(response.headers["x-request-id"]) == 36
