from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns:
        dict: ``status`` set to "ok" plus the active rate limit policy, so
            operators can confirm which threshold and window are in force.
    """

    return {
        "status": "ok",
        "rate_limit": {
            "enabled": settings.app.rate_limit_enabled,
            "threshold": settings.app.rate_limit_threshold,
            "window_ms": settings.app.rate_limit_window_ms,
        },
    }
