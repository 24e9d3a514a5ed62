from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.lab import router as lab_router

__all__ = ["health_router", "lab_router"]
