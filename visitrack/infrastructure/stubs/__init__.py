"""In-memory stub implementations of the application ports."""

from visitrack.infrastructure.stubs.audit_repository_stub import (
    AuditRepositoryStub,
    AuditStorageUnavailableError,
)
from visitrack.infrastructure.stubs.channel_sender_stub import ChannelSenderStub, SentMessage
from visitrack.infrastructure.stubs.consent_repository_stub import ConsentRepositoryStub
from visitrack.infrastructure.stubs.user_directory_stub import UserDirectoryStub
from visitrack.infrastructure.stubs.visit_repository_stub import VisitRepositoryStub
from visitrack.infrastructure.stubs.visitor_repository_stub import VisitorRepositoryStub

__all__ = [
    "AuditRepositoryStub",
    "AuditStorageUnavailableError",
    "ChannelSenderStub",
    "ConsentRepositoryStub",
    "SentMessage",
    "UserDirectoryStub",
    "VisitRepositoryStub",
    "VisitorRepositoryStub",
]
