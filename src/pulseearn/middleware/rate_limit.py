"""Fixed-window request limits per client IP, counted in Redis."""

import time
from typing import Any, NamedTuple

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pulseearn.redis_client import get_redis

logger = structlog.get_logger()

EXEMPT_PATHS = frozenset({"/health", "/ready"})
CREDENTIAL_PATHS = frozenset({"/api/v1/auth/login", "/api/v1/auth/register"})


class Window(NamedTuple):
    key: str
    limit: int
    resets_in: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    ``requests_per_window`` per IP for the API as a whole; login and register
    share a separate, smaller budget. Without Redis nothing is limited.
    """

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        window_seconds: int = 60,
        auth_requests_per_window: int = 20,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.auth_requests_per_window = auth_requests_per_window

    def window_for(self, request: Request, now: float | None = None) -> Window:
        now = time.time() if now is None else now
        index, elapsed = divmod(int(now), self.window_seconds)
        ip = request.client.host if request.client else "unknown"
        if request.url.path in CREDENTIAL_PATHS:
            scope, limit = "auth", self.auth_requests_per_window
        else:
            scope, limit = "api", self.requests_per_window
        return Window(f"pulseearn:ratelimit:{scope}:{ip}:{index}", limit, self.window_seconds - elapsed)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        window = self.window_for(request)
        async with redis.pipeline(transaction=True) as pipe:
            count, _ = await pipe.incr(window.key).expire(window.key, self.window_seconds + 1).execute()

        headers = {"X-RateLimit-Limit": str(window.limit), "X-RateLimit-Remaining": str(max(0, window.limit - count))}
        if count > window.limit:
            logger.warning("rate_limited", key=window.key, count=count)
            return JSONResponse(
                {"detail": "Rate limit exceeded. Try again later."},
                status_code=429,
                headers={**headers, "Retry-After": str(window.resets_in)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
