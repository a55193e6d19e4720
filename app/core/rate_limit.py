"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Rate limiting strategy:
- Sliding window per client, 20 requests per 60 seconds by default.
- The client is identified by a trusted proxy header (CF-Connecting-IP),
  falling back to a fixed loopback address when the header is absent.
"""

from __future__ import annotations

import logging

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import settings
from app.core.errors import RateLimitAppError
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int] | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return a process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_ms,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemorySlidingWindowRateLimiter(
            limit=settings.app.rate_limit_requests,
            window_ms=settings.app.rate_limit_window_ms,
        )
        _limiter_config = config

    return _limiter


def get_client_key(request: Request) -> str:
    """Identify the client for quota bucketing.

    The proxy header is trusted as supplied; it is not verified.
    """

    return request.headers.get(settings.app.client_ip_header) or settings.app.fallback_client_ip


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-client quota.

    Consumes one unit from the client's budget when allowed.

    Raises:
        RateLimitAppError: When the client is at or over the ceiling.
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_rate_limiter()
    client_key = get_client_key(request)
    key_hash = hash_identifier(client_key)

    result = limiter.consume(client_key)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "window_ms": settings.app.rate_limit_window_ms,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] | None = None
    if settings.app.rate_limit_include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_at),
        }

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message=RATE_LIMIT_MESSAGE,
        details={
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        },
        headers=headers,
    )
