"""Notification delivery errors.

Single-channel failures are never raised; they are recorded on the dispatch
report. Only exhaustion of a critical event surfaces to the caller.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from visitrack.domain.exceptions import VisitrackError


class DeliveryError(VisitrackError):
    """Base class for notification delivery errors."""


class DeliveryExhaustedError(DeliveryError):
    """Raised when every channel for a critical event failed.

    The caller (e.g. an emergency broadcast) is expected to escalate
    out-of-band.

    Attributes:
        notification_id: The notification that could not be delivered.
        attempted: Number of channel attempts made.
    """

    def __init__(self, notification_id: UUID, attempted: int) -> None:
        self.notification_id = notification_id
        self.attempted = attempted
        super().__init__(
            f"Critical notification {notification_id} was not delivered on any "
            f"channel ({attempted} attempts)"
        )


class RealtimeRateLimitError(DeliveryError):
    """Raised when a connection exceeds its per-event-type rate limit.

    Over-limit events are rejected, never queued.

    Attributes:
        connection_id: The connection that exceeded the limit.
        event_type: The event type being limited.
        limit: Configured events per window.
        retry_at: When the oldest event in the window expires.
    """

    def __init__(
        self,
        connection_id: str,
        event_type: str,
        limit: int,
        retry_at: datetime,
    ) -> None:
        self.connection_id = connection_id
        self.event_type = event_type
        self.limit = limit
        self.retry_at = retry_at
        super().__init__(
            f"Rate limit exceeded for connection {connection_id} on {event_type}: "
            f"{limit} per window. Retry at {retry_at.isoformat()}."
        )


class UnknownConnectionError(DeliveryError):
    """Raised when a connection id is not registered."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is not registered")


class RealtimeEventForbiddenError(VisitrackError):
    """Raised when a connection's role may not send an inbound event type."""

    def __init__(self, connection_id: str, event_type: str, role: str) -> None:
        self.connection_id = connection_id
        self.event_type = event_type
        self.role = role
        super().__init__(f"Role '{role}' may not send '{event_type}' events")
