"""API routes."""

from visitrack.api.routes.metrics import router as metrics_router
from visitrack.api.routes.visits import router as visits_router

__all__ = ["metrics_router", "visits_router"]
