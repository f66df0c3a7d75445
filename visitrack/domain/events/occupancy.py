"""Occupancy domain events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from visitrack.domain.models.notification import (
    NotificationEvent,
    NotificationPriority,
    NotificationType,
    RoleTarget,
    RoomTarget,
)
from visitrack.domain.models.occupancy import OccupancySnapshot
from visitrack.domain.models.recipient import FRONT_DESK_ROOM, UserRole

OCCUPANCY_CHANGED_EVENT_TYPE: str = "occupancy.changed"
OCCUPANCY_ALERT_EVENT_TYPE: str = "occupancy.alert"


@dataclass(frozen=True, eq=True)
class OccupancyChangedEvent:
    """The on-site count changed."""

    snapshot: OccupancySnapshot
    changed_at: datetime

    @property
    def event_type(self) -> str:
        return OCCUPANCY_CHANGED_EVENT_TYPE

    def to_notifications(self) -> list[NotificationEvent]:
        return [
            NotificationEvent.create(
                type=NotificationType.OCCUPANCY_CHANGED,
                target=RoomTarget(FRONT_DESK_ROOM),
                title="Occupancy updated",
                message=f"{self.snapshot.current} of {self.snapshot.max_occupancy} on site",
                created_at=self.changed_at,
                priority=NotificationPriority.LOW,
                data=self.snapshot.to_dict(),
            )
        ]


@dataclass(frozen=True, eq=True)
class OccupancyAlertEvent:
    """Occupancy crossed the alert threshold upward."""

    snapshot: OccupancySnapshot
    threshold: float
    raised_at: datetime

    @property
    def event_type(self) -> str:
        return OCCUPANCY_ALERT_EVENT_TYPE

    def to_notifications(self) -> list[NotificationEvent]:
        percent = round(self.snapshot.rate * 100)
        return [
            NotificationEvent.create(
                type=NotificationType.OCCUPANCY_ALERT,
                target=RoleTarget(UserRole.ADMIN),
                title="High occupancy",
                message=f"Building occupancy is at {percent}% capacity",
                created_at=self.raised_at,
                priority=NotificationPriority.HIGH,
                data={**self.snapshot.to_dict(), "threshold": self.threshold},
            )
        ]
