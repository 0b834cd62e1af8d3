"""CORS preflight for the JSON API."""

from httpx import AsyncClient

FRONTEND = "http://localhost:3000"


def _preflight(method: str, headers: str = "authorization") -> dict[str, str]:
    return {
        "Origin": FRONTEND,
        "Access-Control-Request-Method": method,
        "Access-Control-Request-Headers": headers,
    }


async def test_preflight_for_settings_update(client: AsyncClient) -> None:
    response = await client.options("/api/v1/user/settings", headers=_preflight("PUT", "authorization,content-type"))
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == FRONTEND
    assert "PUT" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-max-age"] == "600"


async def test_preflight_rejects_unserved_method(client: AsyncClient) -> None:
    response = await client.options("/api/v1/user/settings", headers=_preflight("PATCH"))
    assert response.status_code == 400


async def test_preflight_rejects_unknown_origin(client: AsyncClient) -> None:
    headers = {**_preflight("POST"), "Origin": "https://evil.example"}
    response = await client.options("/api/v1/poke", headers=headers)
    assert response.status_code == 400


async def test_cache_status_exposed_to_frontends(client: AsyncClient) -> None:
    response = await client.get("/api/v1/badges/preview", headers={"Origin": FRONTEND})
    exposed = response.headers["access-control-expose-headers"]
    assert "X-Cache" in exposed
    assert "Retry-After" in exposed
