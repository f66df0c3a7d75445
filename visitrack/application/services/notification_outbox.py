"""Single-consumer notification outbox.

Transitions publish domain events here after they commit; a background
consumer hands each resulting notification to the router. publish() never
blocks the caller: when the queue is full the event is dropped and logged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import NamedTuple, Optional

import structlog

from visitrack.domain.events import OutboxEvent
from visitrack.domain.models.notification import DispatchReport, NotificationEvent
from visitrack.infrastructure.monitoring.metrics import get_metrics_collector
from visitrack.infrastructure.observability.correlation import (
    correlation_scope,
    get_correlation_id,
)

DispatchHandler = Callable[[NotificationEvent], Awaitable[DispatchReport]]
SettleHook = Callable[[], Awaitable[None]]

DEFAULT_OUTBOX_MAX_SIZE: int = 10_000


class QueuedNotification(NamedTuple):
    notification: NotificationEvent
    # ID of the request that published it; restored around dispatch
    correlation_id: str


class NotificationOutbox:
    """Bounded queue between committed transitions and the router."""

    def __init__(
        self,
        handler: DispatchHandler,
        max_size: int = DEFAULT_OUTBOX_MAX_SIZE,
        settle: SettleHook | None = None,
    ) -> None:
        """Initialize the outbox.

        Args:
            handler: Coroutine that dispatches one notification.
            max_size: Queue capacity.
            settle: Awaited by drain() once the queue is empty, for work the
                handler left running in the background.
        """
        self._handler = handler
        self._settle = settle
        self._queue: asyncio.Queue[QueuedNotification] = asyncio.Queue(maxsize=max_size)
        self._running: bool = False
        self._task: Optional[asyncio.Task[None]] = None
        self._dropped = 0
        self._log = structlog.get_logger().bind(service="notification_outbox")

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped

    def publish(self, event: OutboxEvent) -> bool:
        """Enqueue every notification the event fans out to.

        Returns:
            False if any notification was dropped because the queue is full.
        """
        accepted = True
        correlation_id = get_correlation_id()
        for notification in event.to_notifications():
            try:
                self._queue.put_nowait(QueuedNotification(notification, correlation_id))
            except asyncio.QueueFull:
                self._dropped += 1
                accepted = False
                get_metrics_collector().increment_outbox_dropped(notification.type.value)
                self._log.warning(
                    "outbox_full_notification_dropped",
                    event_type=event.event_type,
                    notification_type=notification.type.value,
                    notification_id=str(notification.id),
                )
        return accepted

    async def start(self) -> None:
        """Start the consumer loop. Idempotent."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        self._log.info("notification_outbox_started")

    async def stop(self, drain: bool = True) -> None:
        """Stop the consumer, optionally dispatching what is still queued."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if drain:
            await self.drain()
        self._log.info("notification_outbox_stopped", dropped=self._dropped)

    async def drain(self) -> int:
        """Dispatch every queued notification now and settle background work.

        Returns:
            Number of notifications processed.
        """
        processed = 0
        while True:
            try:
                queued = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            await self._dispatch(queued)
            processed += 1
        if self._settle is not None:
            await self._settle()
        return processed

    async def _run_loop(self) -> None:
        while self._running:
            await self._dispatch(await self._queue.get())

    async def _dispatch(self, queued: QueuedNotification) -> None:
        notification = queued.notification
        try:
            with correlation_scope(queued.correlation_id or None):
                await self._handler(notification)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.error(
                "outbox_dispatch_failed",
                notification_id=str(notification.id),
                notification_type=notification.type.value,
                error=str(e),
            )
        finally:
            self._queue.task_done()
