"""Production adapters for the application ports."""

from visitrack.infrastructure.adapters.http_channel_sender import HttpChannelSender
from visitrack.infrastructure.adapters.system_time_authority import SystemTimeAuthority

__all__ = ["HttpChannelSender", "SystemTimeAuthority"]
