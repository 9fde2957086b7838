"""Redis connection pool and the JSON cache helpers built on it.

Redis is optional at runtime. Rate limiting and the admin dashboard cache
switch off when the pool was never initialized, and they let requests
through (with a warning) when the server cannot be reached. ``/ready``
reports either case.
"""

import json
from typing import Any

import redis.asyncio as redis
import structlog
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the shared client; connections are opened lazily.

    Timeouts and a single quick retry keep a Redis outage from stalling requests.
    """
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=2,
        socket_timeout=2,
        retry=Retry(ExponentialBackoff(cap=0.2, base=0.01), 1),
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """The shared client. Raises RuntimeError before ``init_redis``."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_optional_redis() -> redis.Redis | None:
    """The shared client, or None when Redis is not in use."""
    return _pool


async def cache_get_json(client: redis.Redis, key: str) -> Any | None:  # noqa: ANN401
    """Cached value, or None on a miss or when Redis is unreachable."""
    try:
        raw = await client.get(key)
    except RedisError as exc:
        logger.warning("cache_read_failed", key=key, error=str(exc))
        return None
    return json.loads(raw) if raw else None


async def cache_set_json(client: redis.Redis, key: str, value: Any, ttl_seconds: int) -> None:  # noqa: ANN401
    try:
        await client.setex(key, ttl_seconds, json.dumps(value, default=str))
    except RedisError as exc:
        logger.warning("cache_write_failed", key=key, error=str(exc))
