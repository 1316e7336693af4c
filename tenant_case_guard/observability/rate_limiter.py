"""
Rate limiting for the enforcement API.

Requests carrying a known API key are counted per key with the authenticated
limit; everything else is counted per remote address. Counters live in the
storage named by RATE_LIMIT_STORAGE_URI so several workers can share them.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tenant_case_guard.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def get_api_key_from_request(request: Request) -> str | None:
    """Extract API key from request header."""
    return request.headers.get("X-API-Key")


def get_rate_limit_key(request: Request) -> str:
    """Counter key: the user behind a known API key, else the client address."""
    api_key = get_api_key_from_request(request)
    user_id = settings.api_keys.get(api_key) if api_key else None
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


def get_rate_limit_for_key(key: str) -> str:
    """Limit string for a counter key produced by `get_rate_limit_key`."""
    if key.startswith("user:"):
        return f"{settings.rate_limit_per_minute_authenticated}/minute"
    return f"{settings.rate_limit_per_minute}/minute"


limiter = Limiter(
    key_func=get_rate_limit_key,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limiter(app) -> None:
    """Configure rate limiting for the FastAPI app."""
    if not settings.rate_limit_enabled:
        logger.info("Rate limiting is disabled")
        return

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        request_id = getattr(request.state, "request_id", "unknown")
        key = get_rate_limit_key(request)
        logger.warning(f"Rate limit exceeded for {key}", extra={"request_id": request_id})

        limit_value = (
            settings.rate_limit_per_minute_authenticated
            if key.startswith("user:")
            else settings.rate_limit_per_minute
        )
        response = JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "Too many requests. Please try again later.",
                "request_id": request_id,
            },
        )
        response.headers["Retry-After"] = "60"
        response.headers["X-RateLimit-Limit"] = str(limit_value)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response

    app.state.limiter = limiter

    logger.info(
        f"Rate limiting enabled ({settings.rate_limit_storage_uri}): "
        f"{settings.rate_limit_per_minute} req/min (unauthenticated), "
        f"{settings.rate_limit_per_minute_authenticated} req/min (authenticated)"
    )


def rate_limit(limit_str: str | None = None):
    """Decorator factory applying a limit to an endpoint.

    Without `limit_str` the limit depends on whether the caller presented a
    known API key. The endpoint must accept a `request: Request` argument.
    """
    if not settings.rate_limit_enabled:

        def noop_decorator(func):
            return func

        return noop_decorator

    def decorator(func):
        return limiter.limit(limit_str or get_rate_limit_for_key)(func)

    return decorator
