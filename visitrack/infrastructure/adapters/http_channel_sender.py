"""HTTP notification gateway sender.

Hands e-mail and SMS messages to an external gateway with a JSON POST.
Retries, timeouts and fallback between channels belong to the router; a
single send() is a single request.
"""

from __future__ import annotations

from typing import Any

import httpx
from structlog import get_logger

from visitrack.application.ports.channel_sender import ChannelSenderProtocol
from visitrack.domain.errors.notification import DeliveryError
from visitrack.domain.models.notification import DeliveryChannel, NotificationEvent
from visitrack.domain.models.recipient import Recipient

logger = get_logger()


class HttpChannelSender(ChannelSenderProtocol):
    """Sends one channel's messages to `<gateway_url>/<channel>`.

    Attributes:
        channel: EMAIL or SMS.
    """

    def __init__(
        self,
        channel: DeliveryChannel,
        gateway_url: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if channel == DeliveryChannel.REALTIME:
            raise ValueError("Realtime delivery does not go through the gateway")
        self.channel = channel
        self._url = f"{gateway_url.rstrip('/')}/{channel.value}"
        self._client = client

    def _address(self, recipient: Recipient) -> str:
        address = recipient.email if self.channel == DeliveryChannel.EMAIL else recipient.phone
        if not address:
            raise DeliveryError(
                f"Recipient {recipient.user_id} has no {self.channel.value} address"
            )
        return address

    def _payload(self, recipient: Recipient, event: NotificationEvent) -> dict[str, Any]:
        return {
            "notification_id": str(event.id),
            "type": event.type.value,
            "priority": event.priority.value,
            "to": self._address(recipient),
            "title": event.title,
            "message": event.message,
        }

    async def send(self, recipient: Recipient, event: NotificationEvent) -> None:
        """POST the message.

        Raises:
            DeliveryError: Missing address, transport error or non-2xx reply.
        """
        payload = self._payload(recipient, event)
        log = logger.bind(
            channel=self.channel.value,
            notification_id=str(event.id),
            recipient_id=str(recipient.user_id),
        )
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            log.warning("gateway_request_error", error=str(e))
            raise DeliveryError(f"{self.channel.value} gateway error: {e}") from e

        if response.status_code >= 300:
            log.warning("gateway_rejected", status_code=response.status_code)
            raise DeliveryError(
                f"{self.channel.value} gateway returned {response.status_code}"
            )
        log.debug("gateway_accepted", status_code=response.status_code)
