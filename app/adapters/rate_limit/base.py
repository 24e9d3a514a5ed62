"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can change without touching the middleware.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ClientWindowState:
    """Per-client counter state.

    Attributes:
        count: Requests observed in the current window.
        window_start_ms: Time of the last observed request, in milliseconds.
            Rollover is decided against this value.
    """

    count: int = 0
    window_start_ms: float = 0.0


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Requests allowed per window (the threshold).
        count: Requests observed in the current window, including this one.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    count: int
    retry_after_seconds: int | None

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client identifier (e.g., source address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_state(self, key: str) -> ClientWindowState | None:
        """Return a copy of the state tracked for ``key``, if any."""
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Forget every tracked client."""
        raise NotImplementedError

    def admit(self, key: str) -> bool:
        """Consume one request for ``key`` and return only the decision."""
        return self.consume(key).allowed
