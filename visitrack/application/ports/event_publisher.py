"""Event publisher port.

Publishing never blocks the caller's transition.
"""

from __future__ import annotations

from typing import Protocol

from visitrack.domain.events import OutboxEvent


class EventPublisherProtocol(Protocol):
    def publish(self, event: OutboxEvent) -> bool:
        """Enqueue an event for fan-out.

        Returns:
            False when the event was dropped because the queue is full.
        """
        ...
