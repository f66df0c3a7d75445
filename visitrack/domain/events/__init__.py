"""Domain events published to the notification outbox."""

from typing import Protocol, Union

from visitrack.domain.events.emergency import (
    EMERGENCY_DECLARED_EVENT_TYPE,
    EmergencyDeclaredEvent,
)
from visitrack.domain.events.occupancy import (
    OCCUPANCY_ALERT_EVENT_TYPE,
    OCCUPANCY_CHANGED_EVENT_TYPE,
    OccupancyAlertEvent,
    OccupancyChangedEvent,
)
from visitrack.domain.events.visit import (
    VISIT_CANCELLED_EVENT_TYPE,
    VISIT_EXPIRED_EVENT_TYPE,
    VISIT_NO_SHOW_EVENT_TYPE,
    VISIT_OVERDUE_EVENT_TYPE,
    VISITOR_ARRIVED_EVENT_TYPE,
    VISITOR_DEPARTED_EVENT_TYPE,
    VisitClosedEvent,
    VisitOverdueEvent,
    VisitorArrivedEvent,
    VisitorDepartedEvent,
)
from visitrack.domain.models.notification import NotificationEvent


class OutboxEvent(Protocol):
    """Anything the outbox can fan out."""

    @property
    def event_type(self) -> str: ...

    def to_notifications(self) -> list[NotificationEvent]: ...


DomainEvent = Union[
    VisitorArrivedEvent,
    VisitorDepartedEvent,
    VisitOverdueEvent,
    VisitClosedEvent,
    OccupancyChangedEvent,
    OccupancyAlertEvent,
]

__all__ = [
    "EMERGENCY_DECLARED_EVENT_TYPE",
    "OCCUPANCY_ALERT_EVENT_TYPE",
    "OCCUPANCY_CHANGED_EVENT_TYPE",
    "VISITOR_ARRIVED_EVENT_TYPE",
    "VISITOR_DEPARTED_EVENT_TYPE",
    "VISIT_CANCELLED_EVENT_TYPE",
    "VISIT_EXPIRED_EVENT_TYPE",
    "VISIT_NO_SHOW_EVENT_TYPE",
    "VISIT_OVERDUE_EVENT_TYPE",
    "DomainEvent",
    "EmergencyDeclaredEvent",
    "OccupancyAlertEvent",
    "OccupancyChangedEvent",
    "OutboxEvent",
    "VisitClosedEvent",
    "VisitOverdueEvent",
    "VisitorArrivedEvent",
    "VisitorDepartedEvent",
]
