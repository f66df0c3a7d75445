"""Offline channel sender stub.

Records every delivered message and can be scripted to fail or hang, so
router retry, timeout and fallback paths can be driven from tests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from visitrack.application.ports.channel_sender import ChannelSenderProtocol
from visitrack.domain.errors.notification import DeliveryError
from visitrack.domain.models.notification import DeliveryChannel, NotificationEvent
from visitrack.domain.models.recipient import Recipient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentMessage:
    recipient: Recipient
    event: NotificationEvent


class ChannelSenderStub(ChannelSenderProtocol):
    """Scriptable in-memory sender for one channel.

    Attributes:
        channel: Channel served.
        sent: Messages delivered, in order.
        calls: Number of send() calls, including failures.
    """

    def __init__(
        self,
        channel: DeliveryChannel,
        fail_times: int = 0,
        always_fail: bool = False,
        hang_seconds: float = 0.0,
    ) -> None:
        self.channel = channel
        self.sent: list[SentMessage] = []
        self.calls = 0
        self._fail_times = fail_times
        self._always_fail = always_fail
        self._hang_seconds = hang_seconds

    async def send(self, recipient: Recipient, event: NotificationEvent) -> None:
        self.calls += 1
        if self._hang_seconds:
            await asyncio.sleep(self._hang_seconds)
        if self._always_fail or self._fail_times > 0:
            if self._fail_times > 0:
                self._fail_times -= 1
            raise DeliveryError(f"{self.channel.value} transport unavailable")
        self.sent.append(SentMessage(recipient=recipient, event=event))
        logger.debug(
            "Sent %s via %s to %s", event.type.value, self.channel.value, recipient.user_id
        )

    @classmethod
    def failing(cls, channel: DeliveryChannel) -> ChannelSenderStub:
        return cls(channel, always_fail=True)

    @classmethod
    def hanging(cls, channel: DeliveryChannel, seconds: float = 60.0) -> ChannelSenderStub:
        return cls(channel, hang_seconds=seconds)
