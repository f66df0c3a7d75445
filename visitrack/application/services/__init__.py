"""Application services for visitrack."""

from visitrack.application.services.audit_trail_service import (
    AuditTrailService,
    RetentionSweepResult,
)
from visitrack.application.services.connection_registry import (
    Connection,
    ConnectionRegistry,
    ConnectionStats,
)
from visitrack.application.services.consent_ledger_service import ConsentLedgerService
from visitrack.application.services.emergency_service import EmergencyService
from visitrack.application.services.event_rate_limiter import EventRateLimiter
from visitrack.application.services.notification_outbox import NotificationOutbox
from visitrack.application.services.notification_router import NotificationRouter
from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.application.services.realtime_gateway import RealtimeGateway
from visitrack.application.services.sweep_scheduler import SweepScheduler
from visitrack.application.services.visit_registry_service import (
    PreRegistration,
    VisitRegistryService,
)

__all__ = [
    "AuditTrailService",
    "Connection",
    "ConnectionRegistry",
    "ConnectionStats",
    "ConsentLedgerService",
    "EmergencyService",
    "EventRateLimiter",
    "NotificationOutbox",
    "NotificationRouter",
    "OccupancyTracker",
    "PreRegistration",
    "RealtimeGateway",
    "RetentionSweepResult",
    "SweepScheduler",
    "VisitRegistryService",
]
