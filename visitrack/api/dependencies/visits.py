"""Visit API dependencies.

Services come from the process-wide container; tests swap it with
set_container().
"""

from fastapi import Request

from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.bootstrap.container import get_container
from visitrack.domain.models.audit_log_entry import RequestContext
from visitrack.infrastructure.observability.correlation import get_correlation_id


def get_visit_registry_service() -> VisitRegistryService:
    """Get the visit registry service."""
    return get_container().registry


def get_occupancy_tracker() -> OccupancyTracker:
    """Get the occupancy tracker."""
    return get_container().occupancy


def get_request_context(request: Request) -> RequestContext:
    """Request metadata recorded on audit entries."""
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        session_id=request.headers.get("x-session-id"),
        request_id=get_correlation_id() or None,
    )
