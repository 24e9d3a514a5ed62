"""Per-request context passed explicitly through the middleware chain.

The Timer stage creates a ``RequestContext`` and stores it on
``request.state.context``; later stages read it from there instead of
stamping ad-hoc attributes on the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Request

ClientIdResolver = Callable[[Request], str]

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RequestContext:
    """Ephemeral state for one request/response cycle.

    Attributes:
        received_at: ``time.perf_counter()`` value when the Timer stage ran.
        client_id: Key used to partition rate limit state.
    """

    received_at: float
    client_id: str


def default_client_id(request: Request) -> str:
    """Derive the client identifier from the connection's source address."""

    return request.client.host if request.client else UNKNOWN_CLIENT


def resolve_client_id(request: Request) -> str:
    """Resolve the client id using the resolver configured on the app.

    Falls back to the source address when the app was built without a
    custom resolver.
    """

    resolver: ClientIdResolver | None = getattr(
        request.app.state, "client_id_resolver", None
    )
    client_id = (resolver or default_client_id)(request)
    return client_id or UNKNOWN_CLIENT


def get_request_context(request: Request) -> RequestContext | None:
    return getattr(request.state, "context", None)


class CompletionHook:
    """Callback that runs at most once, however many times it is fired."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> None:
        if self._fired:
            return
        self._fired = True
        self._callback()
