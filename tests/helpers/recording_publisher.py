"""Event publisher that records instead of queueing."""

from __future__ import annotations

from visitrack.application.ports.event_publisher import EventPublisherProtocol
from visitrack.domain.events import OutboxEvent


class RecordingPublisher(EventPublisherProtocol):
    """Collects every published event for assertions."""

    def __init__(self) -> None:
        self.events: list[OutboxEvent] = []

    def publish(self, event: OutboxEvent) -> bool:
        self.events.append(event)
        return True

    def of_type(self, event_type: str) -> list[OutboxEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()
