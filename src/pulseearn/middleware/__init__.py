"""Middleware registration."""

from fastapi import FastAPI

from pulseearn.config import Settings
from pulseearn.middleware.cors import setup_cors
from pulseearn.middleware.error_handler import setup_error_handlers
from pulseearn.middleware.logging import setup_logging
from pulseearn.middleware.rate_limit import RateLimitMiddleware
from pulseearn.middleware.request_id import RequestIdMiddleware

__all__ = ["setup_middleware"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap every response, including 429s from the rate limiter.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        auth_requests_per_window=settings.rate_limit_auth_requests,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
