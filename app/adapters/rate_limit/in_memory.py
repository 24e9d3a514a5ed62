"""In-memory per-client rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the read-increment-compare-write sequence.
- Entries are never evicted; state lives for the lifetime of the process.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import replace
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientWindowState,
    RateLimitResult,
)


def _now_ms() -> float:
    return time.time() * 1000


class InMemoryLastSeenWindowRateLimiter(AbstractRateLimiter):
    """Counter-per-client limiter whose window is anchored on the last request.

    Every request, admitted or rejected, moves the client's window start to
    the current time. The counter only resets when the gap since the previous
    request exceeds ``window_ms``, so a client that keeps sending requests
    more often than once per window never gets a reset, while a client that
    pauses for longer than a window starts again from one.
    """

    def __init__(
        self,
        *,
        threshold: int,
        window_ms: int,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        """Initialize the limiter.

        Args:
            threshold: Requests admitted before further ones are rejected.
            window_ms: Idle gap in milliseconds that resets a client's counter.
            clock: Time source returning milliseconds.

        Raises:
            ValueError: If threshold or window_ms are invalid.
        """
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._threshold = threshold
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, ClientWindowState] = {}

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def consume(self, key: str) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it is admitted.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            state = self._state_by_key.get(key)
            if state is None:
                state = ClientWindowState()
                self._state_by_key[key] = state

            if now - state.window_start_ms > self._window_ms:
                state.count = 0

            state.count += 1
            state.window_start_ms = now
            count = state.count

        if count <= self._threshold:
            return RateLimitResult(
                allowed=True,
                limit=self._threshold,
                count=count,
                retry_after_seconds=None,
            )

        return RateLimitResult(
            allowed=False,
            limit=self._threshold,
            count=count,
            retry_after_seconds=int(math.ceil(self._window_ms / 1000)),
        )

    def get_state(self, key: str) -> ClientWindowState | None:
        with self._lock:
            state = self._state_by_key.get(key)
            return replace(state) if state is not None else None

    def reset(self) -> None:
        with self._lock:
            self._state_by_key.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)
