"""Route-level request validation dependencies."""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from app.core.errors import PolicyRejectionError


def missing_query_param_message(name: str) -> str:
    """Client-facing message for a missing query parameter ("Name query ...")."""

    return f"{name[:1].upper()}{name[1:]} query parameter is required"


def require_query_param(name: str) -> Callable[[Request], str]:
    """Build a dependency that requires a non-empty ``name`` query parameter.

    The dependency returns the parameter value so routes can receive it via
    ``Depends``. Other query parameters are ignored.

    Args:
        name: Query parameter that must be present.

    Returns:
        A FastAPI dependency callable.

    Raises (from the dependency):
        PolicyRejectionError: 400 when the parameter is missing or empty.
    """

    async def _require(request: Request) -> str:
        value = request.query_params.get(name)
        if not value:
            raise PolicyRejectionError(
                code="missing_query_parameter",
                message=missing_query_param_message(name),
                details={"parameter": name},
                status_code=400,
            )
        return value

    return _require
