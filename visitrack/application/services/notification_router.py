"""Notification router.

Fans a notification out to its target:

1. Real-time: every live connection in the target room gets a ServerPush on
   its queue. Fire-and-forget; a full queue counts as a failed attempt.
2. Offline escalation: for high and critical priority, each resolved
   recipient with no live connection is tried on e-mail then SMS, per their
   preferences. Each attempt is bounded by the channel timeout; a timeout
   fails the attempt without retry, transport errors retry with exponential
   backoff. Fallback stops at the first delivered channel, except critical
   events which go out on every enabled channel.
3. One NOTIFICATION_DISPATCHED audit entry summarizes every attempt, and the
   attempts are appended to the visit's notification log.

The outbox dispatches with ``detach_escalation=True``: real-time fan-out
finishes before dispatch() returns and the offline escalation, audit entry
and visit log run in a tracked background task, at most
``max_escalations`` at a time. A stalled provider then holds up only its
own recipients. wait_for_escalations() settles every pending task.

A channel failure is never raised. The only delivery error that surfaces is
DeliveryExhaustedError, when a critical event reached nobody.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from visitrack.application.ports.channel_sender import ChannelSenderProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.ports.user_directory import UserDirectoryProtocol
from visitrack.application.ports.visit_repository import VisitRepositoryProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.base import LoggingMixin
from visitrack.application.services.connection_registry import (
    Connection,
    ConnectionRegistry,
    ConnectionStats,
)
from visitrack.application.services.event_rate_limiter import EventRateLimiter
from visitrack.domain.errors.notification import (
    DeliveryExhaustedError,
    UnknownConnectionError,
)
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditOutcome,
    AuditSeverity,
    NotificationDeliveryDetails,
    RiskLevel,
)
from visitrack.domain.models.notification import (
    OFFLINE_CHANNELS,
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
from visitrack.domain.models.recipient import Recipient, UserRole, roles_for_room
from visitrack.domain.models.visit import NotificationLogEntry
from visitrack.infrastructure.monitoring.metrics import get_metrics_collector

DEFAULT_RETRY_ATTEMPTS: int = 3
DEFAULT_RETRY_BASE_DELAY: float = 1.0
DEFAULT_CHANNEL_TIMEOUT: float = 10.0
DEFAULT_MAX_ESCALATIONS: int = 64


class NotificationRouter(LoggingMixin):
    """Owns live connections and delivers notifications across channels."""

    def __init__(
        self,
        connections: ConnectionRegistry,
        rate_limiter: EventRateLimiter,
        user_directory: UserDirectoryProtocol,
        audit_trail: AuditTrailService,
        visit_repository: VisitRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        senders: Sequence[ChannelSenderProtocol] = (),
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        channel_timeout: float = DEFAULT_CHANNEL_TIMEOUT,
        max_escalations: int = DEFAULT_MAX_ESCALATIONS,
    ) -> None:
        """Initialize the router.

        Args:
            connections: Sharded live connection registry.
            rate_limiter: Limiter applied to inbound client events.
            user_directory: Resolves targets into recipients.
            audit_trail: Records one entry per dispatch.
            visit_repository: Receives notification log appends.
            time_authority: Clock.
            senders: Offline channel senders (at most one per channel).
            retry_attempts: Attempts per offline channel per recipient.
            retry_base_delay: Backoff base; attempt n waits base * 2**(n-1).
            channel_timeout: Timeout of one offline attempt, in seconds.
            max_escalations: Detached escalations allowed to run at once.
        """
        self._connections = connections
        self._rate_limiter = rate_limiter
        self._directory = user_directory
        self._audit = audit_trail
        self._visits = visit_repository
        self._time = time_authority
        self._senders: dict[DeliveryChannel, ChannelSenderProtocol] = {
            s.channel: s for s in senders
        }
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._channel_timeout = channel_timeout
        self._escalation_slots = asyncio.Semaphore(max_escalations)
        self._escalations: set[asyncio.Task[DispatchReport | None]] = set()
        self._init_logger(component="notifications")

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    async def connect(self, connection_id: str, user_id: UUID, role: UserRole) -> Connection:
        """Register a live connection. Idempotent per connection id."""
        return await self._connections.connect(connection_id, user_id, role, self._time.now())

    async def disconnect(self, connection_id: str) -> None:
        await self._connections.disconnect(connection_id)
        self._rate_limiter.forget(connection_id)

    def is_online(self, user_id: UUID) -> bool:
        return self._connections.is_online(user_id)

    def connection_stats(self) -> ConnectionStats:
        return self._connections.stats()

    def get_connection(self, connection_id: str) -> Connection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise UnknownConnectionError(connection_id)
        return connection

    def admit(self, connection_id: str, event_type: str) -> int:
        """Rate-limit one inbound event from a connection.

        Returns:
            Events remaining in the window.

        Raises:
            UnknownConnectionError: The connection is not registered.
            RealtimeRateLimitError: Over the per-type limit.
        """
        self.get_connection(connection_id)
        return self._rate_limiter.admit(connection_id, event_type)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(
        self, event: NotificationEvent, *, detach_escalation: bool = False
    ) -> DispatchReport:
        """Deliver one notification on every applicable channel.

        With ``detach_escalation`` the returned report holds only the
        real-time attempts and ``escalation_pending`` tells whether offline
        delivery is still running.

        Raises:
            DeliveryExhaustedError: A critical event had no delivered attempt.
            AuditWriteError: The dispatch summary could not be recorded.
        """
        realtime: list[ChannelAttempt] = []
        if event.allows(DeliveryChannel.REALTIME):
            realtime = self._deliver_realtime(event)

        offline: list[Recipient] = []
        if event.priority.escalates_offline:
            recipients = await self._resolve_recipients(event)
            offline = [r for r in recipients if not self._connections.is_online(r.user_id)]

        if not (detach_escalation and offline):
            return await self._complete(event, realtime, offline)

        task = asyncio.create_task(self._complete_detached(event, realtime, offline))
        self._escalations.add(task)
        task.add_done_callback(self._escalations.discard)
        return DispatchReport(
            notification_id=event.id,
            notification_type=event.type,
            priority=event.priority,
            attempts=tuple(realtime),
            escalation_pending=True,
        )

    @property
    def pending_escalations(self) -> int:
        return len(self._escalations)

    async def wait_for_escalations(self) -> None:
        """Wait until every detached escalation has finished."""
        while self._escalations:
            await asyncio.gather(*list(self._escalations), return_exceptions=True)

    async def _complete_detached(
        self,
        event: NotificationEvent,
        realtime: list[ChannelAttempt],
        offline: list[Recipient],
    ) -> DispatchReport | None:
        # Nobody awaits this task, so failures end here
        async with self._escalation_slots:
            try:
                return await self._complete(event, realtime, offline)
            except Exception as e:
                self._log_operation("escalate", notification_id=event.id).error(
                    "detached_escalation_failed",
                    notification_type=event.type.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return None

    async def _complete(
        self,
        event: NotificationEvent,
        realtime: list[ChannelAttempt],
        offline: list[Recipient],
    ) -> DispatchReport:
        log = self._log_operation(
            "dispatch",
            notification_id=str(event.id),
            notification_type=event.type.value,
            priority=event.priority.value,
        )

        attempts = list(realtime)
        if offline:
            results = await asyncio.gather(*(self._escalate(r, event) for r in offline))
            for recipient_attempts in results:
                attempts.extend(recipient_attempts)

        report = DispatchReport(
            notification_id=event.id,
            notification_type=event.type,
            priority=event.priority,
            attempts=tuple(attempts),
        )

        metrics = get_metrics_collector()
        for attempt in attempts:
            metrics.increment_notification_attempts(attempt.channel.value, attempt.outcome.value)

        await self._record_dispatch(event, report)
        if event.visit_id is not None and attempts:
            await self._append_visit_log(event, report)

        log.info(
            "notification_dispatched",
            target=_describe_target(event),
            attempts=len(attempts),
            delivered=report.delivered_count,
            failed=report.failed_count,
        )

        if event.priority == NotificationPriority.CRITICAL and not report.any_delivered:
            log.error("critical_notification_undelivered", attempts=len(attempts))
            raise DeliveryExhaustedError(event.id, len(attempts))
        return report

    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
        visit_id: UUID | None = None,
    ) -> DispatchReport:
        """Send a generic notification to one user."""
        return await self.dispatch(
            NotificationEvent.create(
                type=NotificationType.NOTIFICATION,
                target=UserTarget(user_id),
                title=title,
                message=message,
                created_at=self._time.now(),
                priority=priority,
                data=data,
                visit_id=visit_id,
            )
        )

    async def notify_role(
        self,
        role: UserRole,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
    ) -> DispatchReport:
        """Send a generic notification to everyone holding a role."""
        return await self.dispatch(
            NotificationEvent.create(
                type=NotificationType.NOTIFICATION,
                target=RoleTarget(role),
                title=title,
                message=message,
                created_at=self._time.now(),
                priority=priority,
                data=data,
            )
        )

    def _deliver_realtime(self, event: NotificationEvent) -> list[ChannelAttempt]:
        push = ServerPush.from_event(event)
        attempts = []
        for connection in self._connections.connections_in_room(event.target.room):
            if connection.push(push):
                outcome, error = DeliveryOutcome.DELIVERED, None
            else:
                outcome, error = DeliveryOutcome.FAILED, "connection queue full"
            attempts.append(
                ChannelAttempt(
                    channel=DeliveryChannel.REALTIME,
                    recipient_id=connection.user_id,
                    outcome=outcome,
                    attempts=1,
                    error=error,
                )
            )
        return attempts

    async def _resolve_recipients(self, event: NotificationEvent) -> list[Recipient]:
        target = event.target
        if isinstance(target, UserTarget):
            user = await self._directory.get_user(target.user_id)
            recipients: Iterable[Recipient] = [user] if user is not None else []
        elif isinstance(target, RoleTarget):
            recipients = await self._directory.list_by_roles(frozenset({target.role}))
        elif isinstance(target, RoomTarget):
            recipients = await self._directory.list_by_roles(roles_for_room(target.name))
        elif isinstance(target, BroadcastTarget):
            recipients = await self._directory.list_active()
        else:
            recipients = []
        return [r for r in recipients if r.is_active]

    async def _escalate(
        self, recipient: Recipient, event: NotificationEvent
    ) -> list[ChannelAttempt]:
        attempts: list[ChannelAttempt] = []
        for channel in OFFLINE_CHANNELS:
            if not event.allows(channel):
                continue
            sender = self._senders.get(channel)
            if sender is None or not _channel_enabled(recipient, channel):
                attempts.append(
                    ChannelAttempt(
                        channel=channel,
                        recipient_id=recipient.user_id,
                        outcome=DeliveryOutcome.SKIPPED_DISABLED,
                        error=None if sender is not None else "no sender configured",
                    )
                )
                continue

            attempt = await self._send_with_retry(sender, recipient, event)
            attempts.append(attempt)
            if attempt.delivered and event.priority != NotificationPriority.CRITICAL:
                break
        return attempts

    async def _send_with_retry(
        self,
        sender: ChannelSenderProtocol,
        recipient: Recipient,
        event: NotificationEvent,
    ) -> ChannelAttempt:
        log = self._log_operation(
            "send",
            notification_id=str(event.id),
            channel=sender.channel.value,
            recipient_id=str(recipient.user_id),
        )
        last_error = ""
        for attempt in range(1, self._retry_attempts + 1):
            try:
                await asyncio.wait_for(sender.send(recipient, event), self._channel_timeout)
            except asyncio.TimeoutError:
                log.warning("channel_send_timeout", attempt=attempt, timeout=self._channel_timeout)
                return ChannelAttempt(
                    channel=sender.channel,
                    recipient_id=recipient.user_id,
                    outcome=DeliveryOutcome.FAILED,
                    attempts=attempt,
                    error="timeout",
                )
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                log.warning("channel_send_failed", attempt=attempt, error=last_error)
                if attempt < self._retry_attempts:
                    await asyncio.sleep(self._retry_base_delay * (2 ** (attempt - 1)))
                continue
            return ChannelAttempt(
                channel=sender.channel,
                recipient_id=recipient.user_id,
                outcome=DeliveryOutcome.DELIVERED,
                attempts=attempt,
            )

        return ChannelAttempt(
            channel=sender.channel,
            recipient_id=recipient.user_id,
            outcome=DeliveryOutcome.FAILED,
            attempts=self._retry_attempts,
            error=last_error,
        )

    async def _record_dispatch(self, event: NotificationEvent, report: DispatchReport) -> None:
        critical = event.priority == NotificationPriority.CRITICAL
        if report.any_delivered:
            outcome = AuditOutcome.SUCCESS if report.failed_count == 0 else AuditOutcome.WARNING
        elif report.failed_count or critical:
            outcome = AuditOutcome.FAILURE
        else:
            # Nobody to reach is not a failure for non-critical events
            outcome = AuditOutcome.SUCCESS
        await self._audit.record(
            "NOTIFICATION_DISPATCHED",
            AuditCategory.SYSTEM_ACCESS,
            outcome=outcome,
            severity=AuditSeverity.CRITICAL if critical else AuditSeverity.LOW,
            risk_level=RiskLevel.HIGH if critical else RiskLevel.LOW,
            visit_id=event.visit_id,
            details=NotificationDeliveryDetails(
                notification_id=str(event.id),
                notification_type=event.type.value,
                priority=event.priority.value,
                target=_describe_target(event),
                attempts=tuple(a.to_dict() for a in report.attempts),
                delivered=report.delivered_count,
                failed=report.failed_count,
            ),
        )

    async def _append_visit_log(self, event: NotificationEvent, report: DispatchReport) -> None:
        assert event.visit_id is not None
        now = self._time.now()
        entries = tuple(
            NotificationLogEntry(
                notification_type=event.type.value,
                channel=a.channel.value,
                recipient_id=a.recipient_id,
                outcome=a.outcome.value,
                sent_at=now,
            )
            for a in report.attempts
        )
        await self._visits.append_notifications(event.visit_id, entries)


def _channel_enabled(recipient: Recipient, channel: DeliveryChannel) -> bool:
    prefs = recipient.preferences
    if channel == DeliveryChannel.EMAIL:
        return prefs.email_enabled and bool(recipient.email)
    if channel == DeliveryChannel.SMS:
        return prefs.sms_enabled and bool(recipient.phone)
    return prefs.push_enabled


def _describe_target(event: NotificationEvent) -> str:
    return "broadcast" if isinstance(event.target, BroadcastTarget) else event.target.room
