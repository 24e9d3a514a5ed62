from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from fastapi import FastAPI

from app.api.routes import health_router, lab_router
from app.core.config import settings
from app.core.exception_handlers import fault_barrier_middleware, setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import (
    request_id_middleware,
    request_logger_middleware,
    request_timer_middleware,
)
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import rate_limit_middleware
from app.core.request_context import ClientIdResolver


def create_app(*, client_id_resolver: ClientIdResolver | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        client_id_resolver: Optional function deriving the rate limit key from
            a request. Defaults to the connection's source address.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Middleware Lab API",
        description=(
            "Demonstrates a request admission middleware chain: request "
            "logging, response timing, per-client rate limiting, query "
            "validation and structured error handling."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    app.state.client_id_resolver = client_id_resolver

    # Middleware: last registered runs first, so the chain executes as
    # request id -> logger -> timer -> fault barrier -> rate limiter -> route.
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(fault_barrier_middleware)
    app.middleware("http")(request_timer_middleware)
    app.middleware("http")(request_logger_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(lab_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
