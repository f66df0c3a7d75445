"""Visit domain model and status state machine.

A visit is one visitor's single scheduled-or-actual presence episode.

State Machine:
    PRE_REGISTERED -> CHECKED_IN (visitor arrives at the gate)
    PRE_REGISTERED -> CANCELLED (operator cancels)
    PRE_REGISTERED -> EXPIRED (QR token TTL elapsed without check-in)
    PRE_REGISTERED -> NO_SHOW (scheduled arrival long past)
    CHECKED_IN -> CHECKED_OUT (visitor leaves)

Evacuation is an orthogonal flag, not a state. Terminal visits are immutable
except for post-hoc annotation (rating/feedback) and notification log appends.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from visitrack.domain.errors.visit import InvalidVisitTransitionError


class VisitStatus(Enum):
    """Status in the visit lifecycle.

    States:
        PRE_REGISTERED: Created with a QR token, visitor not yet arrived
        CHECKED_IN: Visitor is on site (counts toward occupancy)
        CHECKED_OUT: Visitor left (terminal)
        CANCELLED: Cancelled before arrival (terminal)
        EXPIRED: QR token elapsed before arrival (terminal)
        NO_SHOW: Visitor never arrived (terminal)
    """

    PRE_REGISTERED = "pre_registered"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NO_SHOW = "no_show"

    def is_terminal(self) -> bool:
        """Check if this status accepts no further transitions."""
        return self in TERMINAL_STATUSES

    def valid_transitions(self) -> frozenset[VisitStatus]:
        """Get valid target statuses from this status."""
        return STATUS_TRANSITION_MATRIX.get(self, frozenset())


TERMINAL_STATUSES: frozenset[VisitStatus] = frozenset(
    {
        VisitStatus.CHECKED_OUT,
        VisitStatus.CANCELLED,
        VisitStatus.EXPIRED,
        VisitStatus.NO_SHOW,
    }
)

STATUS_TRANSITION_MATRIX: dict[VisitStatus, frozenset[VisitStatus]] = {
    VisitStatus.PRE_REGISTERED: frozenset(
        {
            VisitStatus.CHECKED_IN,
            VisitStatus.CANCELLED,
            VisitStatus.EXPIRED,
            VisitStatus.NO_SHOW,
        }
    ),
    # Evacuation does not leave CHECKED_IN
    VisitStatus.CHECKED_IN: frozenset({VisitStatus.CHECKED_OUT}),
    VisitStatus.CHECKED_OUT: frozenset(),
    VisitStatus.CANCELLED: frozenset(),
    VisitStatus.EXPIRED: frozenset(),
    VisitStatus.NO_SHOW: frozenset(),
}


def duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded half up."""
    return int(math.floor((end - start).total_seconds() / 60 + 0.5))


@dataclass(frozen=True, eq=True)
class EvacuationDetails:
    """Where and by whom an on-site visitor was accounted for.

    Attributes:
        assembly_point: Muster point the visitor reported to.
        marked_by: User who marked the visitor evacuated.
        notes: Free-text operator notes.
        evacuated_at: Set by the registry when the flag is applied.
    """

    assembly_point: str | None = None
    marked_by: UUID | None = None
    notes: str | None = None
    evacuated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assembly_point": self.assembly_point,
            "marked_by": str(self.marked_by) if self.marked_by else None,
            "notes": self.notes,
            "evacuated_at": self.evacuated_at.isoformat() if self.evacuated_at else None,
        }


@dataclass(frozen=True, eq=True)
class NotificationLogEntry:
    """One channel attempt recorded against a visit."""

    notification_type: str
    channel: str
    recipient_id: UUID | None
    outcome: str
    sent_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_type": self.notification_type,
            "channel": self.channel,
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            "outcome": self.outcome,
            "sent_at": self.sent_at.isoformat(),
        }


@dataclass(frozen=True, eq=True)
class Visit:
    """A visit and its lifecycle timestamps.

    Since Visit is frozen, every transition returns a new instance. The
    transition helpers enforce STATUS_TRANSITION_MATRIX and compute derived
    fields (expected_checkout, actual_duration) at the call site.

    Attributes:
        id: Visit identifier.
        visitor_id: The visitor.
        host_id: The host user being visited.
        purpose: Stated purpose of the visit.
        status: Current lifecycle status.
        expected_duration: Expected length in minutes (optional).
        actual_duration: Minutes on site; set iff checked in and out.
        scheduled_arrival: Planned arrival time (optional).
        pre_registered_at: When the visit was created.
        qr_token: Opaque token bound to this visit.
        qr_token_expires_at: When the token stops being accepted.
        checked_in_at / checked_in_by: Check-in instant and operator.
        expected_checkout: checked_in_at + expected_duration.
        checked_out_at / checked_out_by: Check-out instant and operator.
        badge_number: Printed badge number (optional).
        notifications_sent: Ordered channel attempts for this visit.
        emergency_evacuated: Orthogonal evacuation flag.
        evacuation: Details recorded with the flag.
        host_confirmed / host_confirmed_at: Host acknowledged the visit.
        security_approved / security_approved_by / security_approved_at /
            security_notes: Security desk approval.
        overdue_notified_at: When the overdue advisory was emitted.
        cancelled_at / cancellation_reason: Cancellation record.
        rating / feedback / feedback_at: Post-hoc annotation.
    """

    id: UUID
    visitor_id: UUID
    host_id: UUID
    purpose: str
    pre_registered_at: datetime
    qr_token: str
    qr_token_expires_at: datetime
    status: VisitStatus = field(default=VisitStatus.PRE_REGISTERED)
    expected_duration: int | None = field(default=None)
    actual_duration: int | None = field(default=None)
    scheduled_arrival: datetime | None = field(default=None)
    checked_in_at: datetime | None = field(default=None)
    checked_in_by: UUID | None = field(default=None)
    expected_checkout: datetime | None = field(default=None)
    checked_out_at: datetime | None = field(default=None)
    checked_out_by: UUID | None = field(default=None)
    badge_number: str | None = field(default=None)
    notifications_sent: tuple[NotificationLogEntry, ...] = field(default=())
    emergency_evacuated: bool = field(default=False)
    evacuation: EvacuationDetails | None = field(default=None)
    host_confirmed: bool = field(default=False)
    host_confirmed_at: datetime | None = field(default=None)
    security_approved: bool = field(default=False)
    security_approved_by: UUID | None = field(default=None)
    security_approved_at: datetime | None = field(default=None)
    security_notes: str | None = field(default=None)
    overdue_notified_at: datetime | None = field(default=None)
    cancelled_at: datetime | None = field(default=None)
    cancellation_reason: str | None = field(default=None)
    rating: int | None = field(default=None)
    feedback: str | None = field(default=None)
    feedback_at: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate visit invariants."""
        if not self.purpose.strip():
            raise ValueError("Visit purpose cannot be empty")
        if self.expected_duration is not None and self.expected_duration <= 0:
            raise ValueError("Expected duration must be a positive number of minutes")
        if (self.actual_duration is not None) != (
            self.checked_in_at is not None and self.checked_out_at is not None
        ):
            raise ValueError(
                "actual_duration is defined iff both checked_in_at and checked_out_at are set"
            )
        if self.status == VisitStatus.CHECKED_IN and (
            self.checked_in_at is None or self.checked_out_at is not None
        ):
            raise ValueError("Checked-in visit must have checked_in_at and no checked_out_at")

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.status == VisitStatus.CHECKED_IN

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal()

    def is_token_expired(self, now: datetime) -> bool:
        """Check if the QR token TTL has elapsed."""
        return self.qr_token_expires_at < now

    def is_overdue(self, now: datetime) -> bool:
        """Check if an on-site visit has passed its expected checkout."""
        return (
            self.status == VisitStatus.CHECKED_IN
            and self.expected_checkout is not None
            and self.expected_checkout < now
        )

    def minutes_on_site(self, now: datetime) -> int:
        """Duration so far, or the final duration for completed visits."""
        if self.actual_duration is not None:
            return self.actual_duration
        if self.checked_in_at is not None and self.status == VisitStatus.CHECKED_IN:
            return duration_minutes(self.checked_in_at, now)
        return 0

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _guard(self, target: VisitStatus) -> None:
        if target not in self.status.valid_transitions():
            raise InvalidVisitTransitionError(self.status, target)

    def checked_in(self, at: datetime, operator_id: UUID) -> Visit:
        """Return the visit checked in at `at` by `operator_id`."""
        self._guard(VisitStatus.CHECKED_IN)
        expected_checkout = (
            at + timedelta(minutes=self.expected_duration)
            if self.expected_duration is not None
            else None
        )
        return replace(
            self,
            status=VisitStatus.CHECKED_IN,
            checked_in_at=at,
            checked_in_by=operator_id,
            expected_checkout=expected_checkout,
        )

    def checked_out(
        self,
        at: datetime,
        operator_id: UUID,
        rating: int | None = None,
        feedback: str | None = None,
    ) -> Visit:
        """Return the visit checked out at `at`, with its actual duration."""
        self._guard(VisitStatus.CHECKED_OUT)
        assert self.checked_in_at is not None
        return replace(
            self,
            status=VisitStatus.CHECKED_OUT,
            checked_out_at=at,
            checked_out_by=operator_id,
            actual_duration=duration_minutes(self.checked_in_at, at),
            rating=rating if rating is not None else self.rating,
            feedback=feedback if feedback is not None else self.feedback,
            feedback_at=at if (rating is not None or feedback is not None) else self.feedback_at,
        )

    def cancelled(self, at: datetime, reason: str) -> Visit:
        self._guard(VisitStatus.CANCELLED)
        return replace(
            self,
            status=VisitStatus.CANCELLED,
            cancelled_at=at,
            cancellation_reason=reason,
        )

    def expired(self) -> Visit:
        self._guard(VisitStatus.EXPIRED)
        return replace(self, status=VisitStatus.EXPIRED)

    def marked_no_show(self) -> Visit:
        self._guard(VisitStatus.NO_SHOW)
        return replace(self, status=VisitStatus.NO_SHOW)

    # -------------------------------------------------------------------------
    # Orthogonal flags and annotation
    # -------------------------------------------------------------------------

    def with_evacuation(self, details: EvacuationDetails, at: datetime) -> Visit:
        return replace(
            self,
            emergency_evacuated=True,
            evacuation=replace(details, evacuated_at=at),
        )

    def with_overdue_notified(self, at: datetime) -> Visit:
        return replace(self, overdue_notified_at=at)

    def with_notifications(self, entries: tuple[NotificationLogEntry, ...]) -> Visit:
        return replace(self, notifications_sent=self.notifications_sent + entries)

    def with_host_confirmed(self, at: datetime) -> Visit:
        return replace(self, host_confirmed=True, host_confirmed_at=at)

    def with_security_approval(
        self, approver_id: UUID, at: datetime, notes: str | None = None
    ) -> Visit:
        return replace(
            self,
            security_approved=True,
            security_approved_by=approver_id,
            security_approved_at=at,
            security_notes=notes,
        )

    def with_feedback(self, rating: int | None, feedback: str | None, at: datetime) -> Visit:
        return replace(self, rating=rating, feedback=feedback, feedback_at=at)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for audit snapshots and API responses."""

        def _iso(value: datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "id": str(self.id),
            "visitor_id": str(self.visitor_id),
            "host_id": str(self.host_id),
            "purpose": self.purpose,
            "status": self.status.value,
            "expected_duration": self.expected_duration,
            "actual_duration": self.actual_duration,
            "scheduled_arrival": _iso(self.scheduled_arrival),
            "pre_registered_at": _iso(self.pre_registered_at),
            "qr_token_expires_at": _iso(self.qr_token_expires_at),
            "checked_in_at": _iso(self.checked_in_at),
            "checked_in_by": str(self.checked_in_by) if self.checked_in_by else None,
            "expected_checkout": _iso(self.expected_checkout),
            "checked_out_at": _iso(self.checked_out_at),
            "checked_out_by": str(self.checked_out_by) if self.checked_out_by else None,
            "badge_number": self.badge_number,
            "emergency_evacuated": self.emergency_evacuated,
            "host_confirmed": self.host_confirmed,
            "security_approved": self.security_approved,
            "cancellation_reason": self.cancellation_reason,
            "rating": self.rating,
        }


@dataclass(frozen=True, eq=True)
class VisitTransition:
    """A committed status change, the unit OccupancyTracker replays.

    Attributes:
        visit_id: The visit that changed.
        from_status: Status before the change.
        to_status: Status after the change.
        at: When the change was committed.
    """

    visit_id: UUID
    from_status: VisitStatus
    to_status: VisitStatus
    at: datetime
