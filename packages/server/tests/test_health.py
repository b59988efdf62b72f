"""
Health, readiness and error-shape tests.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_ready_check(client: AsyncClient):
    with patch("app.main.ping_database", AsyncMock(return_value=True)), patch(
        "app.main.ping_redis", AsyncMock(return_value=True)
    ):
        response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_ready_check_degraded(client: AsyncClient):
    with patch("app.main.ping_database", AsyncMock(return_value=True)), patch(
        "app.main.ping_redis", AsyncMock(return_value=False)
    ):
        response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json()["checks"] == {"database": "ok", "redis": "unavailable"}


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/feedback" in data["endpoints"]


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_validation_errors_are_400(client: AsyncClient):
    response = await client.post("/auth/login", json={"password": "x"})
    assert response.status_code == 400
    body = response.json()
    assert "Mobile or email is required" in body["detail"]
    assert body["errors"]


@pytest.mark.asyncio
async def test_unauthenticated_is_401(client: AsyncClient):
    response = await client.get("/api/v1/feedback")
    assert response.status_code == 401
