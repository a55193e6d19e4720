from __future__ import annotations

from app.api.routes.diagnosis import router as diagnosis_router
from app.api.routes.health import router as health_router

__all__ = ["diagnosis_router", "health_router"]
