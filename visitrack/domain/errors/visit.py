"""Visit lifecycle errors.

State conflicts are expected outcomes of racing operators and stale screens;
policy violations are refusals the compliance record has to show.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from visitrack.domain.errors.common import (
    NotFoundError,
    PolicyViolationError,
    StateConflictError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from visitrack.domain.models.visit import VisitStatus


class VisitNotFoundError(NotFoundError):
    """Raised when a visit id does not resolve."""

    entity = "visit"


class VisitorNotFoundError(NotFoundError):
    """Raised when a visitor id does not resolve."""

    entity = "visitor"


class HostNotFoundError(NotFoundError):
    """Raised when a host user id does not resolve."""

    entity = "host"


class AlreadyCheckedInError(StateConflictError):
    """Raised when check-in is attempted on a visit that is already checked in.

    Re-entrant check-in is rejected, not merged: the caller must inspect
    the current state before retrying.
    """

    def __init__(self, visit_id: UUID) -> None:
        self.visit_id = visit_id
        super().__init__(f"Visit {visit_id} is already checked in")


class NotCheckedInError(StateConflictError):
    """Raised when an operation requires a checked-in visit.

    Attributes:
        visit_id: The visit.
        status: Its current status.
    """

    def __init__(self, visit_id: UUID, status: VisitStatus) -> None:
        self.visit_id = visit_id
        self.status = status
        super().__init__(
            f"Visit {visit_id} is not checked in (status: {status.value})"
        )


class VisitCompletedError(StateConflictError):
    """Raised when a terminal visit is asked to transition again."""

    def __init__(self, visit_id: UUID, status: VisitStatus) -> None:
        self.visit_id = visit_id
        self.status = status
        super().__init__(
            f"Visit {visit_id} is already completed (status: {status.value}). "
            "Terminal visits cannot transition."
        )


class VisitActiveError(StateConflictError):
    """Raised when cancelling a visit whose visitor is on site."""

    def __init__(self, visit_id: UUID) -> None:
        self.visit_id = visit_id
        super().__init__(
            f"Visit {visit_id} is active; check the visitor out instead of cancelling"
        )


class VisitorAlreadyOnSiteError(StateConflictError):
    """Raised when a visitor already holds another checked-in visit.

    Attributes:
        visitor_id: The visitor.
        active_visit_id: The visit that is currently checked in.
    """

    def __init__(self, visitor_id: UUID, active_visit_id: UUID) -> None:
        self.visitor_id = visitor_id
        self.active_visit_id = active_visit_id
        super().__init__(
            f"Visitor {visitor_id} is already checked in on visit {active_visit_id}"
        )


class VisitorBlacklistedError(PolicyViolationError):
    """Raised when a blacklisted visitor is pre-registered or checked in."""

    def __init__(self, visitor_id: UUID, reason: str | None = None) -> None:
        self.visitor_id = visitor_id
        self.reason = reason
        suffix = f": {reason}" if reason else ""
        super().__init__(f"Visitor {visitor_id} is blacklisted{suffix}")


class ConsentMissingError(PolicyViolationError):
    """Raised when the visitor lacks a valid consent of the required type."""

    def __init__(self, visitor_id: UUID, consent_type: str) -> None:
        self.visitor_id = visitor_id
        self.consent_type = consent_type
        super().__init__(
            f"Visitor {visitor_id} has no valid {consent_type} consent"
        )


class TokenExpiredError(PolicyViolationError):
    """Raised when the QR token TTL elapsed before check-in."""

    def __init__(self, visit_id: UUID, expired_at: datetime | None) -> None:
        self.visit_id = visit_id
        self.expired_at = expired_at
        when = f" at {expired_at.isoformat()}" if expired_at else ""
        super().__init__(f"QR token for visit {visit_id} expired{when}")


class InvalidTokenError(PolicyViolationError):
    """Raised when a presented QR token does not resolve to a visit."""

    def __init__(self) -> None:
        super().__init__("QR token is not recognised")


class InvalidVisitTransitionError(StateConflictError):
    """Raised when a transition is not in the visit status matrix.

    Attributes:
        from_status: Current status.
        to_status: Attempted target status.
    """

    def __init__(self, from_status: VisitStatus, to_status: VisitStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        allowed = sorted(s.value for s in from_status.valid_transitions())
        super().__init__(
            f"Invalid visit transition: {from_status.value} -> {to_status.value}. "
            f"Valid transitions: {allowed}"
        )
