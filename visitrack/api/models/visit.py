"""Visit API request/response models.

Pydantic models for the visit lifecycle endpoints.
"""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, Field, PlainSerializer

from visitrack.application.services.visit_registry_service import PreRegistration
from visitrack.domain.models.occupancy import OccupancySnapshot
from visitrack.domain.models.visit import Visit

# ISO 8601 with Z suffix
DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(
        lambda v: v.isoformat().replace("+00:00", "Z") if v else None, return_type=str
    ),
]


class PreRegisterRequest(BaseModel):
    """Request to pre-register a visit.

    Attributes:
        visitor_id: The registered visitor.
        host_id: Staff user being visited.
        purpose: Stated purpose of the visit.
        scheduled_arrival: Planned arrival time.
        expected_duration: Expected length in minutes.
        operator_id: Staff user creating the visit.
    """

    visitor_id: UUID
    host_id: UUID
    purpose: str = Field(..., min_length=1, max_length=500)
    scheduled_arrival: Optional[datetime] = None
    expected_duration: Optional[int] = Field(default=None, gt=0)
    operator_id: Optional[UUID] = None


class CheckInRequest(BaseModel):
    operator_id: UUID = Field(..., description="Desk user performing the check-in")


class CheckOutRequest(BaseModel):
    operator_id: UUID = Field(..., description="Desk user performing the check-out")
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    feedback: Optional[str] = Field(default=None, max_length=2000)


class VisitResponse(BaseModel):
    """A visit as returned by the API. The QR token is never echoed here."""

    id: UUID
    visitor_id: UUID
    host_id: UUID
    purpose: str
    status: str
    expected_duration: Optional[int] = None
    actual_duration: Optional[int] = None
    scheduled_arrival: Optional[DateTimeWithZ] = None
    pre_registered_at: DateTimeWithZ
    qr_token_expires_at: DateTimeWithZ
    checked_in_at: Optional[DateTimeWithZ] = None
    checked_in_by: Optional[UUID] = None
    expected_checkout: Optional[DateTimeWithZ] = None
    checked_out_at: Optional[DateTimeWithZ] = None
    checked_out_by: Optional[UUID] = None
    badge_number: Optional[str] = None
    emergency_evacuated: bool = False
    host_confirmed: bool = False
    security_approved: bool = False
    cancellation_reason: Optional[str] = None
    rating: Optional[int] = None

    @classmethod
    def from_visit(cls, visit: Visit) -> "VisitResponse":
        return cls(
            id=visit.id,
            visitor_id=visit.visitor_id,
            host_id=visit.host_id,
            purpose=visit.purpose,
            status=visit.status.value,
            expected_duration=visit.expected_duration,
            actual_duration=visit.actual_duration,
            scheduled_arrival=visit.scheduled_arrival,
            pre_registered_at=visit.pre_registered_at,
            qr_token_expires_at=visit.qr_token_expires_at,
            checked_in_at=visit.checked_in_at,
            checked_in_by=visit.checked_in_by,
            expected_checkout=visit.expected_checkout,
            checked_out_at=visit.checked_out_at,
            checked_out_by=visit.checked_out_by,
            badge_number=visit.badge_number,
            emergency_evacuated=visit.emergency_evacuated,
            host_confirmed=visit.host_confirmed,
            security_approved=visit.security_approved,
            cancellation_reason=visit.cancellation_reason,
            rating=visit.rating,
        )


class PreRegisterResponse(BaseModel):
    """Pre-registered visit plus the QR token to hand to the visitor."""

    visit: VisitResponse
    qr_token: str
    qr_token_expires_at: DateTimeWithZ

    @classmethod
    def from_registration(cls, registration: PreRegistration) -> "PreRegisterResponse":
        return cls(
            visit=VisitResponse.from_visit(registration.visit),
            qr_token=registration.qr_token,
            qr_token_expires_at=registration.qr_token_expires_at,
        )


class OccupancyResponse(BaseModel):
    current: int
    max: int
    rate: float

    @classmethod
    def from_snapshot(cls, snapshot: OccupancySnapshot) -> "OccupancyResponse":
        return cls(current=snapshot.current, max=snapshot.max_occupancy, rate=snapshot.rate)


class ProblemDetail(BaseModel):
    """RFC 7807 problem details body."""

    type: str
    title: str
    status: int
    detail: str
    instance: str
