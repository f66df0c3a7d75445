"""Domain models for visitrack."""

from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditDetails,
    AuditLogEntry,
    AuditOutcome,
    AuditSeverity,
    ConsentChangeDetails,
    EmergencyDetails,
    NotificationDeliveryDetails,
    PolicyViolationDetails,
    RequestContext,
    RiskLevel,
    VisitTransitionDetails,
)
from visitrack.domain.models.consent_record import (
    ConsentMethod,
    ConsentRecord,
    ConsentStatus,
    ConsentType,
    LegalBasis,
)
from visitrack.domain.models.notification import (
    BroadcastTarget,
    ChannelAttempt,
    DeliveryChannel,
    DeliveryOutcome,
    DispatchReport,
    NotificationEvent,
    NotificationPriority,
    NotificationTarget,
    NotificationType,
    RoleTarget,
    RoomTarget,
    ServerPush,
    UserTarget,
)
from visitrack.domain.models.occupancy import OccupancySnapshot
from visitrack.domain.models.recipient import (
    ADMIN_ROOM,
    FRONT_DESK_ROOM,
    NotificationPreferences,
    Recipient,
    UserRole,
)
from visitrack.domain.models.visit import (
    STATUS_TRANSITION_MATRIX,
    TERMINAL_STATUSES,
    EvacuationDetails,
    NotificationLogEntry,
    Visit,
    VisitStatus,
    VisitTransition,
)
from visitrack.domain.models.visitor import ConsentSummary, Visitor

__all__ = [
    "ADMIN_ROOM",
    "FRONT_DESK_ROOM",
    "STATUS_TRANSITION_MATRIX",
    "TERMINAL_STATUSES",
    "AuditCategory",
    "AuditDetails",
    "AuditLogEntry",
    "AuditOutcome",
    "AuditSeverity",
    "BroadcastTarget",
    "ChannelAttempt",
    "ConsentChangeDetails",
    "ConsentMethod",
    "ConsentRecord",
    "ConsentStatus",
    "ConsentSummary",
    "ConsentType",
    "DeliveryChannel",
    "DeliveryOutcome",
    "DispatchReport",
    "EmergencyDetails",
    "EvacuationDetails",
    "LegalBasis",
    "NotificationDeliveryDetails",
    "NotificationEvent",
    "NotificationLogEntry",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationTarget",
    "NotificationType",
    "OccupancySnapshot",
    "PolicyViolationDetails",
    "Recipient",
    "RequestContext",
    "RiskLevel",
    "RoleTarget",
    "RoomTarget",
    "ServerPush",
    "UserRole",
    "UserTarget",
    "Visit",
    "VisitStatus",
    "VisitTransition",
    "VisitTransitionDetails",
    "Visitor",
]
