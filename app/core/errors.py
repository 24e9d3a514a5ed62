"""Application-level exception types.

Two families of failures flow through the request pipeline:

- Policy rejections (validation, admission) are expected, client-facing and
  rendered as ``{"error": message}`` with a 4xx status.
- Request faults are unexpected failures raised by a handler or stage and
  rendered as ``{"error": {"message", "status"}}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    parameter: str


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


@dataclass
class PolicyRejectionError(AppError):
    """Raised when a request is refused by policy (e.g. a missing parameter)."""

    status_code: int = 400


@dataclass
class RequestFaultError(AppError):
    """Raised by handlers to signal a fault with a declared HTTP status."""

    status: int = 500
