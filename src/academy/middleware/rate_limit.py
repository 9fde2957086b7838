"""Per-client fixed-window rate limiting on Redis counters."""

import time
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from academy.redis_client import get_optional_redis

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready"})


async def _count_hit(client: redis.Redis, key: str, ttl_seconds: int) -> int:
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.expire(key, ttl_seconds)
    results: list[Any] = await pipe.execute()
    return int(results[0])


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``requests_per_window`` requests per client IP in each window.

    Health checks and CORS preflights are not counted. When Redis is not initialized
    or cannot be reached, every request goes through unlimited.
    """

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, remaining: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.requests_per_window),
            "X-RateLimit-Remaining": str(remaining),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client = get_optional_redis()
        if client is None or request.method == "OPTIONS" or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        peer = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        try:
            count = await _count_hit(client, f"ratelimit:{peer}:{window}", self.window_seconds + 1)
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return await call_next(request)

        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(self.window_seconds), **self._limit_headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(max(0, self.requests_per_window - count)))
        return response
