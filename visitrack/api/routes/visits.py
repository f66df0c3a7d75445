"""Visit lifecycle API routes.

Errors are returned as RFC 7807 bodies by the handlers in
visitrack.api.errors; routes only call the registry.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from visitrack.api.dependencies.visits import (
    get_occupancy_tracker,
    get_request_context,
    get_visit_registry_service,
)
from visitrack.api.models.visit import (
    CheckInRequest,
    CheckOutRequest,
    OccupancyResponse,
    PreRegisterRequest,
    PreRegisterResponse,
    ProblemDetail,
    VisitResponse,
)
from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.domain.models.audit_log_entry import RequestContext

router = APIRouter(prefix="/visits", tags=["visits"])

_PROBLEM = {"model": ProblemDetail}


@router.post(
    "",
    response_model=PreRegisterResponse,
    status_code=201,
    responses={403: _PROBLEM, 404: _PROBLEM, 422: _PROBLEM},
    summary="Pre-register a visit",
)
async def pre_register_visit(
    body: PreRegisterRequest,
    registry: VisitRegistryService = Depends(get_visit_registry_service),
    context: RequestContext = Depends(get_request_context),
) -> PreRegisterResponse:
    """Create a visit and issue its QR token.

    403 when the visitor is blacklisted or has no data-processing consent,
    404 when the visitor or host is unknown.
    """
    registration = await registry.pre_register(
        visitor_id=body.visitor_id,
        host_id=body.host_id,
        purpose=body.purpose,
        scheduled_arrival=body.scheduled_arrival,
        expected_duration=body.expected_duration,
        operator_id=body.operator_id,
        context=context,
    )
    return PreRegisterResponse.from_registration(registration)


@router.get("/occupancy", response_model=OccupancyResponse, summary="Current occupancy")
async def get_occupancy(
    tracker: OccupancyTracker = Depends(get_occupancy_tracker),
) -> OccupancyResponse:
    return OccupancyResponse.from_snapshot(tracker.snapshot())


@router.get("/overdue", response_model=list[VisitResponse], summary="Overdue visits")
async def list_overdue_visits(
    registry: VisitRegistryService = Depends(get_visit_registry_service),
) -> list[VisitResponse]:
    return [VisitResponse.from_visit(v) for v in await registry.list_overdue()]


@router.get(
    "/{visit_id}",
    response_model=VisitResponse,
    responses={404: _PROBLEM},
    summary="Get a visit",
)
async def get_visit(
    visit_id: UUID,
    registry: VisitRegistryService = Depends(get_visit_registry_service),
) -> VisitResponse:
    return VisitResponse.from_visit(await registry.get_visit(visit_id))


@router.post(
    "/{visit_id}/checkin",
    response_model=VisitResponse,
    responses={400: _PROBLEM, 403: _PROBLEM, 404: _PROBLEM, 409: _PROBLEM},
    summary="Check a visitor in",
)
async def check_in_visit(
    visit_id: UUID,
    body: CheckInRequest,
    registry: VisitRegistryService = Depends(get_visit_registry_service),
    context: RequestContext = Depends(get_request_context),
) -> VisitResponse:
    """Check in at the gate.

    400 when already checked in, completed or the token has expired; 403
    when blacklisted; 409 when the visitor is on site on another visit.
    """
    visit = await registry.check_in(visit_id, body.operator_id, context=context)
    return VisitResponse.from_visit(visit)


@router.post(
    "/{visit_id}/checkout",
    response_model=VisitResponse,
    responses={400: _PROBLEM, 404: _PROBLEM},
    summary="Check a visitor out",
)
async def check_out_visit(
    visit_id: UUID,
    body: CheckOutRequest,
    registry: VisitRegistryService = Depends(get_visit_registry_service),
    context: RequestContext = Depends(get_request_context),
) -> VisitResponse:
    visit = await registry.check_out(
        visit_id,
        body.operator_id,
        rating=body.rating,
        feedback=body.feedback,
        context=context,
    )
    return VisitResponse.from_visit(visit)


@router.delete(
    "/{visit_id}",
    response_model=VisitResponse,
    responses={400: _PROBLEM, 404: _PROBLEM},
    summary="Cancel a pre-registered visit",
)
async def cancel_visit(
    visit_id: UUID,
    reason: str = Query(default="cancelled", max_length=500),
    operator_id: UUID | None = Query(default=None),
    registry: VisitRegistryService = Depends(get_visit_registry_service),
    context: RequestContext = Depends(get_request_context),
) -> VisitResponse:
    visit = await registry.cancel(visit_id, reason, operator_id=operator_id, context=context)
    return VisitResponse.from_visit(visit)
