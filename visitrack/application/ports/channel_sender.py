"""Offline channel sender port (e-mail, SMS).

A sender performs exactly one transport attempt. Retry, timeout and fallback
are the router's job.
"""

from __future__ import annotations

from typing import Protocol

from visitrack.domain.models.notification import DeliveryChannel, NotificationEvent
from visitrack.domain.models.recipient import Recipient


class ChannelSenderProtocol(Protocol):
    """Protocol for one offline delivery channel.

    Attributes:
        channel: The channel this sender serves.
    """

    channel: DeliveryChannel

    async def send(self, recipient: Recipient, event: NotificationEvent) -> None:
        """Deliver `event` to `recipient`.

        Raises:
            DeliveryError: The transport rejected or failed the message.
        """
        ...
