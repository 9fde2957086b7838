"""Health endpoints: /health, /ready and /version."""

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from academy.health import router as health_router

pytestmark = pytest.mark.asyncio


class _PingRedis:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    async def ping(self) -> bool:
        if self.fail:
            msg = "connection refused"
            raise RedisConnectionError(msg)
        return True


async def test_liveness(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_degraded_when_redis_never_started(client: AsyncClient) -> None:
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {
        "status": "degraded",
        "checks": {"database": "ok", "redis": "error: not initialized"},
    }


async def test_ready_when_redis_answers(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(health_router, "get_optional_redis", lambda: _PingRedis())
    data = (await client.get("/ready")).json()
    assert data["status"] == "ready"
    assert data["checks"]["redis"] == "ok"


async def test_redis_failure_reported(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(health_router, "get_optional_redis", lambda: _PingRedis(fail=True))
    data = (await client.get("/ready")).json()
    assert data["status"] == "degraded"
    assert data["checks"]["redis"] == "error: connection refused"


async def test_version_reports_environment(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.json() == {"version": "0.1.0", "environment": "development"}
