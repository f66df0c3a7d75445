"""FastAPI dependencies."""

from visitrack.api.dependencies.visits import (
    get_occupancy_tracker,
    get_request_context,
    get_visit_registry_service,
)

__all__ = [
    "get_occupancy_tracker",
    "get_request_context",
    "get_visit_registry_service",
]
