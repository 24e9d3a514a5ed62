"""HTTP middleware stages applied to every request.

Stages, in the order a request passes through them:

- ``request_id_middleware``: accepts an incoming X-Request-ID header or
  generates a UUID, stores it in contextvars and echoes it on the response.
- ``request_logger_middleware``: one ``request.received`` record per request.
- ``request_timer_middleware``: stamps the ``RequestContext`` and emits one
  ``request.completed`` record when the response cycle ends.
- ``rate_limit_middleware`` (see ``app.core.rate_limit``): admission control.

Usage:
    Starlette runs the most recently added middleware first, so register
    them innermost first (see ``app.core.app_factory.create_app``).
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response
from starlette.background import BackgroundTasks

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id, utc_timestamp
from app.core.request_context import CompletionHook, RequestContext, resolve_client_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the configured request id header, that value is
    used. Otherwise a new UUID is generated. The id is stored in contextvars
    for log correlation and echoed back on the response.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with the request id header added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    return response


async def request_logger_middleware(request: Request, call_next) -> Response:
    """Emit one observability record for the inbound request.

    Never rejects and never touches the request or the response.
    """

    logger.info(
        "request.received",
        extra={
            "received_at": utc_timestamp(),
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query or None,
        },
    )
    return await call_next(request)


def _log_completion(path: str, context: RequestContext, status_code: int | None) -> None:
    elapsed_ms = (time.perf_counter() - context.received_at) * 1000
    logger.info(
        "request.completed",
        extra={
            "path": path,
            "status_code": status_code,
            "elapsed_ms": round(elapsed_ms, 3),
        },
    )


def _attach_completion(response: Response, hook: CompletionHook) -> None:
    """Run ``hook`` after the response body has been sent.

    Any background work already attached to the response runs first.
    """

    async def _on_finish() -> None:
        hook.fire()

    tasks = BackgroundTasks()
    if response.background is not None:
        tasks.tasks.append(response.background)
    tasks.add_task(_on_finish)
    response.background = tasks


async def request_timer_middleware(request: Request, call_next) -> Response:
    """Measure each request from this stage until its response is sent.

    Creates the request's ``RequestContext`` and registers a completion hook
    before forwarding. The hook fires exactly once: after the last body chunk
    when a response comes back (including 4xx responses produced by later
    stages), or before re-raising when a later stage raises instead.
    """

    context = RequestContext(
        received_at=time.perf_counter(),
        client_id=resolve_client_id(request),
    )
    request.state.context = context
    path = request.url.path

    response: Response | None = None
    hook = CompletionHook(
        lambda: _log_completion(
            path, context, response.status_code if response is not None else None
        )
    )

    try:
        response = await call_next(request)
    except Exception:
        hook.fire()
        raise

    _attach_completion(response, hook)
    return response
