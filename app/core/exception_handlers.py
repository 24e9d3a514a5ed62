"""Global exception handlers: the terminal error-handling stage.

FastAPI exception handlers that turn errors raised by routes or dependencies
into JSON responses.

Design:
- PolicyRejectionError -> its 4xx status, ``{"error": message}``; logged at INFO
- RequestFaultError -> its declared status, ``{"error": {message, status}}``;
  logged at ERROR with traceback
- Any other exception -> its ``status`` attribute or 500, ``{"error":
  {message, status}}``; the stack trace is logged, never returned

``fault_barrier_middleware`` applies the last rule inside the middleware
chain so the Timer stage sees the response that is actually sent.
"""

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from app.core.errors import PolicyRejectionError, RequestFaultError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def fault_body(message: str, status: int) -> dict:
    return {"error": {"message": message, "status": status}}


async def policy_rejection_handler(request: Request, exc: PolicyRejectionError) -> JSONResponse:
    """Answer an expected policy rejection.

    Rejections are client errors, so they are logged at INFO and never as
    server faults.
    """
    logger.info(
        "request.rejected",
        extra={
            "error_code": exc.code,
            "status_code": exc.status_code,
            "request_path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


async def request_fault_handler(request: Request, exc: RequestFaultError) -> JSONResponse:
    """Answer a fault raised by a handler with its declared status.

    Args:
        request: FastAPI request object.
        exc: RequestFaultError instance.

    Returns:
        JSONResponse with ``{"error": {"message", "status"}}``.
    """
    status = exc.status or 500
    logger.error(
        "request.fault",
        exc_info=exc,
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(status_code=status, content=fault_body(exc.message, status))


def _declared_status(exc: Exception) -> int:
    """Status an arbitrary exception asks for via a ``status`` attribute, else 500."""
    status = getattr(exc, "status", None)
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return 500


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for any other exception.

    The client gets the exception's message and its ``status`` attribute
    (500 when absent). The traceback goes to the log only.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with ``{"error": {"message", "status"}}``.
    """
    status = _declared_status(exc)
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "status_code": status,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    message = str(exc) or INTERNAL_ERROR_MESSAGE
    return JSONResponse(status_code=status, content=fault_body(message, status))


async def fault_barrier_middleware(request: Request, call_next) -> Response:
    """Answer exceptions escaping later stages from inside the middleware chain.

    Starlette otherwise renders them in its outermost layer, after every
    stage (including the Timer) has already unwound.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return await general_exception_handler(request, exc)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(PolicyRejectionError)(policy_rejection_handler)
    app.exception_handler(RequestFaultError)(request_fault_handler)
    app.exception_handler(Exception)(general_exception_handler)
