"""Application ports - interfaces for infrastructure adapters."""

from visitrack.application.ports.audit_repository import AuditRepositoryProtocol
from visitrack.application.ports.channel_sender import ChannelSenderProtocol
from visitrack.application.ports.consent_repository import ConsentRepositoryProtocol
from visitrack.application.ports.event_publisher import EventPublisherProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.ports.user_directory import UserDirectoryProtocol
from visitrack.application.ports.visit_repository import VisitRepositoryProtocol
from visitrack.application.ports.visitor_repository import VisitorRepositoryProtocol

__all__: list[str] = [
    "AuditRepositoryProtocol",
    "ChannelSenderProtocol",
    "ConsentRepositoryProtocol",
    "EventPublisherProtocol",
    "TimeAuthorityProtocol",
    "UserDirectoryProtocol",
    "VisitRepositoryProtocol",
    "VisitorRepositoryProtocol",
]
