"""Visit lifecycle domain events.

Events are published to the notification outbox after a transition has been
persisted and audited. Each event knows which notifications it fans out to;
the router never inspects event classes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from visitrack.domain.models.notification import (
    NotificationEvent,
    NotificationPriority,
    NotificationType,
    RoomTarget,
    UserTarget,
)
from visitrack.domain.models.recipient import FRONT_DESK_ROOM

# =============================================================================
# Event Type Constants
# =============================================================================

VISITOR_ARRIVED_EVENT_TYPE: str = "visit.checked_in"
VISITOR_DEPARTED_EVENT_TYPE: str = "visit.checked_out"
VISIT_OVERDUE_EVENT_TYPE: str = "visit.overdue"
VISIT_CANCELLED_EVENT_TYPE: str = "visit.cancelled"
VISIT_EXPIRED_EVENT_TYPE: str = "visit.expired"
VISIT_NO_SHOW_EVENT_TYPE: str = "visit.no_show"


@dataclass(frozen=True, eq=True)
class VisitorArrivedEvent:
    """A visitor checked in.

    The host is told personally (escalated off-line when not connected) and
    the front desk sees the arrival on its shared room.

    Attributes:
        visit_id: The visit.
        visitor_id: The visitor.
        host_id: The host being visited.
        visitor_name: Display name for message text.
        purpose: Stated purpose.
        checked_in_at: Check-in instant.
        expected_checkout: Expected departure, if a duration was given.
    """

    visit_id: UUID
    visitor_id: UUID
    host_id: UUID
    visitor_name: str
    purpose: str
    checked_in_at: datetime
    expected_checkout: datetime | None = None

    @property
    def event_type(self) -> str:
        return VISITOR_ARRIVED_EVENT_TYPE

    def to_notifications(self) -> list[NotificationEvent]:
        data = {
            "visit_id": str(self.visit_id),
            "visitor_id": str(self.visitor_id),
            "host_id": str(self.host_id),
            "visitor_name": self.visitor_name,
            "purpose": self.purpose,
            "checked_in_at": self.checked_in_at.isoformat(),
            "expected_checkout": (
                self.expected_checkout.isoformat() if self.expected_checkout else None
            ),
        }
        return [
            NotificationEvent.create(
                type=NotificationType.VISITOR_ARRIVED,
                target=UserTarget(self.host_id),
                title="Visitor arrived",
                message=f"{self.visitor_name} has arrived for: {self.purpose}",
                created_at=self.checked_in_at,
                priority=NotificationPriority.HIGH,
                data=data,
                visit_id=self.visit_id,
            ),
            NotificationEvent.create(
                type=NotificationType.VISITOR_ARRIVED,
                target=RoomTarget(FRONT_DESK_ROOM),
                title="Visitor checked in",
                message=f"{self.visitor_name} checked in",
                created_at=self.checked_in_at,
                priority=NotificationPriority.LOW,
                data=data,
                visit_id=self.visit_id,
            ),
        ]


@dataclass(frozen=True, eq=True)
class VisitorDepartedEvent:
    """A visitor checked out."""

    visit_id: UUID
    visitor_id: UUID
    host_id: UUID
    visitor_name: str
    checked_out_at: datetime
    actual_duration: int

    @property
    def event_type(self) -> str:
        return VISITOR_DEPARTED_EVENT_TYPE

    def to_notifications(self) -> list[NotificationEvent]:
        data = {
            "visit_id": str(self.visit_id),
            "visitor_id": str(self.visitor_id),
            "visitor_name": self.visitor_name,
            "checked_out_at": self.checked_out_at.isoformat(),
            "duration": self.actual_duration,
        }
        return [
            NotificationEvent.create(
                type=NotificationType.VISITOR_DEPARTED,
                target=UserTarget(self.host_id),
                title="Visitor departed",
                message=f"{self.visitor_name} has checked out after {self.actual_duration} minutes",
                created_at=self.checked_out_at,
                priority=NotificationPriority.NORMAL,
                data=data,
                visit_id=self.visit_id,
            ),
            NotificationEvent.create(
                type=NotificationType.VISITOR_DEPARTED,
                target=RoomTarget(FRONT_DESK_ROOM),
                title="Visitor checked out",
                message=f"{self.visitor_name} checked out",
                created_at=self.checked_out_at,
                priority=NotificationPriority.LOW,
                data=data,
                visit_id=self.visit_id,
            ),
        ]


@dataclass(frozen=True, eq=True)
class VisitOverdueEvent:
    """An on-site visit passed its expected checkout. Emitted once per visit."""

    visit_id: UUID
    visitor_id: UUID
    host_id: UUID
    visitor_name: str
    expected_checkout: datetime
    detected_at: datetime

    @property
    def event_type(self) -> str:
        return VISIT_OVERDUE_EVENT_TYPE

    @property
    def minutes_overdue(self) -> int:
        return int((self.detected_at - self.expected_checkout).total_seconds() // 60)

    def to_notifications(self) -> list[NotificationEvent]:
        data = {
            "visit_id": str(self.visit_id),
            "visitor_id": str(self.visitor_id),
            "host_id": str(self.host_id),
            "expected_checkout": self.expected_checkout.isoformat(),
            "minutes_overdue": self.minutes_overdue,
        }
        return [
            NotificationEvent.create(
                type=NotificationType.VISIT_OVERDUE,
                target=RoomTarget(FRONT_DESK_ROOM),
                title="Visit overdue",
                message=(
                    f"{self.visitor_name} is {self.minutes_overdue} minutes"
                    " past expected checkout"
                ),
                created_at=self.detected_at,
                priority=NotificationPriority.NORMAL,
                data=data,
                visit_id=self.visit_id,
            ),
            NotificationEvent.create(
                type=NotificationType.VISIT_OVERDUE,
                target=UserTarget(self.host_id),
                title="Your visitor is overdue",
                message=f"{self.visitor_name} has not checked out yet",
                created_at=self.detected_at,
                priority=NotificationPriority.NORMAL,
                data=data,
                visit_id=self.visit_id,
            ),
        ]


@dataclass(frozen=True, eq=True)
class VisitClosedEvent:
    """A pre-registered visit ended without arrival (cancelled, expired, no-show)."""

    visit_id: UUID
    visitor_id: UUID
    host_id: UUID
    status: str
    closed_at: datetime
    reason: str | None = None

    @property
    def event_type(self) -> str:
        return {
            "cancelled": VISIT_CANCELLED_EVENT_TYPE,
            "expired": VISIT_EXPIRED_EVENT_TYPE,
        }.get(self.status, VISIT_NO_SHOW_EVENT_TYPE)

    def to_notifications(self) -> list[NotificationEvent]:
        message = f"Visit {self.status.replace('_', ' ')}"
        if self.reason:
            message = f"{message}: {self.reason}"
        return [
            NotificationEvent.create(
                type=NotificationType.NOTIFICATION,
                target=UserTarget(self.host_id),
                title="Visit update",
                message=message,
                created_at=self.closed_at,
                priority=NotificationPriority.NORMAL,
                data={
                    "visit_id": str(self.visit_id),
                    "status": self.status,
                },
                visit_id=self.visit_id,
            )
        ]
