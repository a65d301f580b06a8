# ==== GATEWAY RATE LIMITING ==== #

"""
Fixed-window rate limiting per client IP, backed by Redis.

The first request of a window creates ``rate_limit:{ip}`` with a 60 second
expiry; requests beyond the per-minute limit get 429 with ``Retry-After``.
When Redis is unavailable requests are let through.
"""

from typing import Callable, Optional

import redis.asyncio as redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from easybill.observability.logging import get_logger
from easybill.observability.metrics import rate_limit_rejections_total
from easybill.settings import settings
from easybill.storage.redis import get_redis_client


logger = get_logger(__name__)

WINDOW_SECONDS = 60
EXEMPT_PATHS = frozenset({"/healthz", "/readyz", "/info", "/metrics"})


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, limit_per_minute: Optional[int] = None, enabled: Optional[bool] = None):
        super().__init__(app)
        self.limit = limit_per_minute or settings.RATE_LIMIT_PER_MINUTE
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        key = f"rate_limit:{client_ip(request)}"
        try:
            client = get_redis_client()
            count = await client.incr(key)
            if count == 1:
                await client.expire(key, WINDOW_SECONDS)
            retry_after = await client.ttl(key) if count > self.limit else None
        except (redis.RedisError, OSError) as e:
            logger.warning("Rate limiter unavailable, allowing request", error=str(e))
            return await call_next(request)

        if count > self.limit:
            rate_limit_rejections_total.inc()
            logger.warning("Rate limit exceeded", client_key=key, count=count)
            wait = retry_after if retry_after and retry_after > 0 else WINDOW_SECONDS
            return JSONResponse(
                status_code=429,
                content={
                    "error": "RateLimitExceeded",
                    "message": "Too many requests",
                    "code": "ERR_RATE_LIMITED",
                    "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                },
                headers={"Retry-After": str(wait)},
            )

        return await call_next(request)
