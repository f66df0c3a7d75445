"""Emergency service.

Declaring an emergency broadcasts a critical notification to everyone,
awaiting the dispatch rather than going through the outbox, and records a
critical security audit entry. If nobody could be reached the
DeliveryExhaustedError propagates so the caller can escalate out of band;
the declaration itself is still audited.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.base import LoggingMixin
from visitrack.application.services.notification_router import NotificationRouter
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.domain.errors.common import VisitValidationError
from visitrack.domain.errors.emergency import EmergencyNotAuthorizedError
from visitrack.domain.errors.notification import DeliveryExhaustedError
from visitrack.domain.events.emergency import EmergencyDeclaredEvent
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditOutcome,
    AuditSeverity,
    EmergencyDetails,
    RiskLevel,
)
from visitrack.domain.models.notification import DispatchReport
from visitrack.domain.models.recipient import UserRole
from visitrack.domain.models.visit import Visit

EMERGENCY_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.SECURITY})


class EmergencyService(LoggingMixin):
    """Declares emergencies and lists who still has to be accounted for."""

    def __init__(
        self,
        router: NotificationRouter,
        registry: VisitRegistryService,
        audit_trail: AuditTrailService,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._router = router
        self._registry = registry
        self._audit = audit_trail
        self._time = time_authority
        self._init_logger(component="emergency")

    async def declare(
        self,
        triggered_by: UUID,
        role: UserRole,
        emergency_type: str,
        message: str,
        location: str | None = None,
    ) -> DispatchReport:
        """Broadcast a critical emergency notification.

        Args:
            triggered_by: Declaring user.
            role: Declaring user's role; must be admin or security.
            emergency_type: e.g. fire, evacuation, lockdown.
            message: Text shown to recipients.
            location: Affected area, if any.

        Returns:
            The dispatch report.

        Raises:
            EmergencyNotAuthorizedError: The role may not declare emergencies.
            VisitValidationError: Empty type or message.
            DeliveryExhaustedError: Nobody received the broadcast.
        """
        if role not in EMERGENCY_ROLES:
            raise EmergencyNotAuthorizedError(triggered_by, role.value)
        if not emergency_type.strip() or not message.strip():
            raise VisitValidationError("Emergency type and message are required")

        log = self._log_operation(
            "declare",
            triggered_by=str(triggered_by),
            emergency_type=emergency_type,
        )
        on_site = len(await self._registry.list_active())
        event = EmergencyDeclaredEvent(
            emergency_id=uuid4(),
            emergency_type=emergency_type,
            message=message,
            triggered_by=triggered_by,
            declared_at=self._time.now(),
            location=location,
            on_site=on_site,
        )
        notification = event.to_notification()
        log.warning("emergency_declared", location=location, on_site=on_site)

        try:
            report = await self._router.dispatch(notification)
        except DeliveryExhaustedError as exc:
            await self._record(event, delivered=0, outcome=AuditOutcome.FAILURE)
            log.critical("emergency_broadcast_undelivered", attempted=exc.attempted)
            raise

        await self._record(event, delivered=report.delivered_count, outcome=AuditOutcome.SUCCESS)
        log.info("emergency_broadcast_completed", delivered=report.delivered_count)
        return report

    async def evacuation_list(self) -> list[Visit]:
        """Active visits not yet marked evacuated."""
        return await self._registry.evacuation_list()

    async def _record(
        self,
        event: EmergencyDeclaredEvent,
        delivered: int,
        outcome: AuditOutcome,
    ) -> None:
        await self._audit.record(
            "EMERGENCY_DECLARED",
            AuditCategory.SECURITY,
            outcome=outcome,
            severity=AuditSeverity.CRITICAL,
            risk_level=RiskLevel.CRITICAL,
            actor_id=event.triggered_by,
            details=EmergencyDetails(
                emergency_type=event.emergency_type,
                message=event.message,
                location=event.location,
                priority="critical",
                delivered=delivered,
            ),
        )
