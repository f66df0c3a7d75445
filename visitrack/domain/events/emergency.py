"""Emergency domain events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from visitrack.domain.models.notification import (
    BroadcastTarget,
    NotificationEvent,
    NotificationPriority,
    NotificationType,
)

EMERGENCY_DECLARED_EVENT_TYPE: str = "emergency.declared"


@dataclass(frozen=True, eq=True)
class EmergencyDeclaredEvent:
    """An emergency was declared by an authorized user.

    Attributes:
        emergency_id: Identifier of the declaration.
        emergency_type: e.g. fire, evacuation, lockdown.
        message: Operator message.
        location: Affected area, if any.
        triggered_by: Declaring user.
        declared_at: When it was declared.
        on_site: Number of visitors on site at declaration.
    """

    emergency_id: UUID
    emergency_type: str
    message: str
    triggered_by: UUID
    declared_at: datetime
    location: str | None = None
    on_site: int = 0

    @property
    def event_type(self) -> str:
        return EMERGENCY_DECLARED_EVENT_TYPE

    def to_notification(self) -> NotificationEvent:
        return NotificationEvent(
            id=self.emergency_id,
            type=NotificationType.EMERGENCY_NOTIFICATION,
            target=BroadcastTarget(),
            title=f"EMERGENCY: {self.emergency_type.upper()}",
            message=self.message,
            priority=NotificationPriority.CRITICAL,
            created_at=self.declared_at,
            data={
                "emergency_id": str(self.emergency_id),
                "type": self.emergency_type,
                "location": self.location,
                "triggered_by": str(self.triggered_by),
                "on_site": self.on_site,
            },
        )
