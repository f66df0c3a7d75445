"""Unit tests for notification value objects."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from visitrack.domain.models.notification import (
    BroadcastTarget,
    ChannelAttempt,
    DeliveryChannel,
    DeliveryOutcome,
    DispatchReport,
    NotificationEvent,
    NotificationPriority,
    NotificationType,
    RoleTarget,
    RoomTarget,
    ServerPush,
    UserTarget,
)
from visitrack.domain.models.occupancy import OccupancySnapshot
from visitrack.domain.models.recipient import FRONT_DESK_ROOM, UserRole, roles_for_room

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class TestTargets:
    """Tests for notification target rooms."""

    def test_rooms(self) -> None:
        user_id = uuid4()
        assert UserTarget(user_id).room == f"user_{user_id}"
        assert RoleTarget(UserRole.SECURITY).room == "role_security"
        assert RoomTarget(FRONT_DESK_ROOM).room == "front_desk"
        assert BroadcastTarget().room == "*"

    def test_front_desk_roles(self) -> None:
        assert roles_for_room(FRONT_DESK_ROOM) == frozenset(
            {UserRole.RECEPTIONIST, UserRole.SECURITY}
        )
        assert roles_for_room("nowhere") == frozenset()


class TestNotificationPriority:
    def test_only_high_and_critical_escalate(self) -> None:
        assert NotificationPriority.HIGH.escalates_offline
        assert NotificationPriority.CRITICAL.escalates_offline
        assert not NotificationPriority.NORMAL.escalates_offline
        assert not NotificationPriority.LOW.escalates_offline


class TestDispatchReport:
    """Tests for DispatchReport counters."""

    def test_counts(self) -> None:
        report = DispatchReport(
            notification_id=uuid4(),
            notification_type=NotificationType.VISITOR_ARRIVED,
            priority=NotificationPriority.HIGH,
            attempts=(
                ChannelAttempt(DeliveryChannel.REALTIME, None, DeliveryOutcome.DELIVERED, 1),
                ChannelAttempt(DeliveryChannel.EMAIL, None, DeliveryOutcome.FAILED, 3, "boom"),
                ChannelAttempt(DeliveryChannel.SMS, None, DeliveryOutcome.SKIPPED_DISABLED),
            ),
        )

        assert report.delivered_count == 1
        assert report.failed_count == 1
        assert report.any_delivered
        assert len(report.for_channel(DeliveryChannel.EMAIL)) == 1

    def test_empty_report(self) -> None:
        report = DispatchReport(uuid4(), NotificationType.NOTIFICATION, NotificationPriority.LOW)
        assert not report.any_delivered
        assert report.delivered_count == 0


class TestServerPush:
    def test_from_event(self) -> None:
        event = NotificationEvent.create(
            type=NotificationType.OCCUPANCY_CHANGED,
            target=RoomTarget(FRONT_DESK_ROOM),
            title="Occupancy updated",
            message="3 of 100 on site",
            created_at=T0,
            data={"current": 3},
        )
        push = ServerPush.from_event(event).to_dict()

        assert push["type"] == "occupancy_changed"
        assert push["data"] == {"current": 3}
        assert push["timestamp"] == T0.isoformat()
        assert event.allows(DeliveryChannel.SMS)


class TestOccupancySnapshot:
    def test_rate(self) -> None:
        assert OccupancySnapshot.compute(25, 100).rate == 0.25

    def test_zero_capacity(self) -> None:
        assert OccupancySnapshot.compute(3, 0).rate == 0.0
