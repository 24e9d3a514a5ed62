"""Rate limiting adapters.

A small abstraction layer so the service can start with an in-memory limiter
and later move to a shared store without changing the HTTP layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientWindowState,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryLastSeenWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "ClientWindowState",
    "InMemoryLastSeenWindowRateLimiter",
    "RateLimitResult",
]
