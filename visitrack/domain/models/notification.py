"""Notification domain models.

A NotificationEvent is ephemeral: it lives from the moment a domain event is
published to the outbox until the router has produced a DispatchReport. Only
the report (summarized into one audit entry) and the per-visit notification
log outlive it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union
from uuid import UUID, uuid4

from visitrack.domain.models.recipient import UserRole


class NotificationType(str, Enum):
    """Event names carried on real-time server pushes."""

    NOTIFICATION = "notification"
    VISITOR_ARRIVED = "visitor_arrived"
    VISITOR_DEPARTED = "visitor_departed"
    EMERGENCY_NOTIFICATION = "emergency_notification"
    OCCUPANCY_CHANGED = "occupancy_changed"
    OCCUPANCY_ALERT = "occupancy_alert"
    VISIT_OVERDUE = "visit_overdue"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def escalates_offline(self) -> bool:
        """Whether offline recipients are reached by e-mail/SMS."""
        return self in (NotificationPriority.HIGH, NotificationPriority.CRITICAL)


class DeliveryChannel(str, Enum):
    REALTIME = "realtime"
    EMAIL = "email"
    SMS = "sms"


# Offline fallback order
OFFLINE_CHANNELS: tuple[DeliveryChannel, ...] = (DeliveryChannel.EMAIL, DeliveryChannel.SMS)


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    SKIPPED_DISABLED = "skipped-disabled"
    FAILED = "failed"
    RATE_LIMITED = "rate-limited"


# =============================================================================
# Targets
# =============================================================================


@dataclass(frozen=True)
class UserTarget:
    user_id: UUID

    @property
    def room(self) -> str:
        return f"user_{self.user_id}"


@dataclass(frozen=True)
class RoleTarget:
    role: UserRole

    @property
    def room(self) -> str:
        return f"role_{self.role.value}"


@dataclass(frozen=True)
class RoomTarget:
    name: str

    @property
    def room(self) -> str:
        return self.name


@dataclass(frozen=True)
class BroadcastTarget:
    """Every live connection and every active user."""

    @property
    def room(self) -> str:
        return "*"


NotificationTarget = Union[UserTarget, RoleTarget, RoomTarget, BroadcastTarget]


# =============================================================================
# Event and delivery records
# =============================================================================


@dataclass(frozen=True)
class NotificationEvent:
    """A message to fan out to one target.

    Attributes:
        id: Notification identifier.
        type: Event name used on the real-time channel.
        target: Who should receive it.
        title: Short title.
        message: Human readable body.
        priority: Drives offline escalation.
        created_at: When the event was raised.
        data: Structured payload for clients.
        visit_id: Visit whose notification log records the attempts.
        channels: Channels the event may use.
    """

    id: UUID
    type: NotificationType
    target: NotificationTarget
    title: str
    message: str
    priority: NotificationPriority
    created_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    visit_id: UUID | None = field(default=None)
    channels: tuple[DeliveryChannel, ...] = field(
        default=(DeliveryChannel.REALTIME, DeliveryChannel.EMAIL, DeliveryChannel.SMS)
    )

    @classmethod
    def create(
        cls,
        type: NotificationType,
        target: NotificationTarget,
        title: str,
        message: str,
        created_at: datetime,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
        visit_id: UUID | None = None,
    ) -> NotificationEvent:
        return cls(
            id=uuid4(),
            type=type,
            target=target,
            title=title,
            message=message,
            priority=priority,
            created_at=created_at,
            data=data or {},
            visit_id=visit_id,
        )

    def allows(self, channel: DeliveryChannel) -> bool:
        return channel in self.channels


@dataclass(frozen=True)
class ChannelAttempt:
    """Outcome of delivering one notification on one channel to one recipient."""

    channel: DeliveryChannel
    recipient_id: UUID | None
    outcome: DeliveryOutcome
    attempts: int = 0
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.outcome == DeliveryOutcome.DELIVERED

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.value,
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            "outcome": self.outcome.value,
            "attempts": self.attempts,
            "error": self.error,
        }


@dataclass(frozen=True)
class DispatchReport:
    """Every channel attempt made for one notification."""

    notification_id: UUID
    notification_type: NotificationType
    priority: NotificationPriority
    attempts: tuple[ChannelAttempt, ...] = ()
    # Offline escalation still running; its attempts land in the audit entry
    escalation_pending: bool = False

    @property
    def delivered_count(self) -> int:
        return sum(1 for a in self.attempts if a.delivered)

    @property
    def failed_count(self) -> int:
        return sum(1 for a in self.attempts if a.outcome == DeliveryOutcome.FAILED)

    @property
    def any_delivered(self) -> bool:
        return any(a.delivered for a in self.attempts)

    def for_channel(self, channel: DeliveryChannel) -> tuple[ChannelAttempt, ...]:
        return tuple(a for a in self.attempts if a.channel == channel)


@dataclass(frozen=True)
class ServerPush:
    """Message placed on a live connection's queue."""

    type: str
    title: str
    message: str
    data: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: NotificationEvent) -> ServerPush:
        return cls(
            type=event.type.value,
            title=event.title,
            message=event.message,
            data=event.data,
            timestamp=event.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
