from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.errors import RequestFaultError
from app.core.validation import require_query_param

router = APIRouter(tags=["Lab"])


@router.get("/")
async def index() -> dict:
    """Landing endpoint confirming the middleware chain admitted the request."""

    return {"message": "Welcome to the Middleware Lab!"}


@router.get("/greet")
async def greet(name: str = Depends(require_query_param("name"))) -> dict:
    """Greet the caller by the ``name`` query parameter.

    Returns:
        dict: ``{"message": "Hello, <name>!"}``.

    Raises:
        PolicyRejectionError: 400 when ``name`` is missing or empty.
    """

    return {"message": f"Hello, {name}!"}


@router.get("/error")
async def fail() -> dict:
    """Always fail, to exercise the terminal error-handling stage."""

    raise RequestFaultError(
        code="demo_fault",
        message="Something went wrong!",
        status=500,
    )
