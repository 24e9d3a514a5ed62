"""Rate limiting stage for the HTTP middleware chain.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: the middleware depends on the adapter interface only.
- Swap-friendly: storage backend can be replaced behind AbstractRateLimiter.
- Rejections are policy, not faults: logged at WARNING, answered with 429.

Strategy:
- One counter per client id (source address unless the app overrides the
  resolver), reset after the client has been idle longer than the window.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryLastSeenWindowRateLimiter
from app.core.config import settings
from app.core.request_context import get_request_context, resolve_client_id

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS_MESSAGE = "Too many requests"

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int] | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_threshold,
        settings.app.rate_limit_window_ms,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemoryLastSeenWindowRateLimiter(
            threshold=settings.app.rate_limit_threshold,
            window_ms=settings.app.rate_limit_window_ms,
        )
        _limiter_config = config

    return _limiter


def reset_rate_limiter() -> None:
    """Drop the cached limiter so the next request starts from empty state."""

    global _limiter, _limiter_config
    _limiter = None
    _limiter_config = None


def _hash_client_id(client_id: str) -> str:
    """Hash the client id for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """Admit or reject the request based on its client's counter.

    Rejected requests get a 429 response here and never reach the handler.
    """

    if not settings.app.rate_limit_enabled:
        return await call_next(request)

    context = get_request_context(request)
    client_id = context.client_id if context else resolve_client_id(request)

    result = get_rate_limiter().consume(client_id)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "client_id_hash": _hash_client_id(client_id),
                "limit": result.limit,
                "count": result.count,
            },
        )
        return await call_next(request)

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_id_hash": _hash_client_id(client_id),
            "limit": result.limit,
            "count": result.count,
            "window_ms": settings.app.rate_limit_window_ms,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": TOO_MANY_REQUESTS_MESSAGE},
        headers=headers or None,
    )
