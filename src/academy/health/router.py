"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import get_settings
from academy.database import get_session
from academy.redis_client import get_optional_redis

router = APIRouter()


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        return f"error: {exc}"
    return "ok"


async def _redis_status() -> str:
    client = get_optional_redis()
    if client is None:
        return "error: not initialized"
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness: the process is up and serving requests."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_session)) -> dict[str, object]:  # noqa: B008
    """Readiness: ``ready`` when the database and Redis both answer, else ``degraded``."""
    checks = {
        "database": await _database_status(db),
        "redis": await _redis_status(),
    }
    healthy = all(status == "ok" for status in checks.values())
    return {"status": "ready" if healthy else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
