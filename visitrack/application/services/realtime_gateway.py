"""Inbound real-time event gateway.

Handles events sent by connected clients. Each event is rate limited per
connection and type, checked against the sender's role, then delegated to
the owning service. The acting user is always the connection's user, never
a value from the payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from visitrack.application.services.base import LoggingMixin
from visitrack.application.services.emergency_service import EmergencyService
from visitrack.application.services.notification_router import NotificationRouter
from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.domain.errors.common import VisitValidationError
from visitrack.domain.errors.notification import RealtimeEventForbiddenError
from visitrack.domain.models.recipient import UserRole

VISITOR_CHECKIN = "visitor_checkin"
VISITOR_CHECKOUT = "visitor_checkout"
EMERGENCY_ALERT = "emergency_alert"
OCCUPANCY_UPDATE = "occupancy_update"

_DESK_ROLES = frozenset({UserRole.ADMIN, UserRole.RECEPTIONIST, UserRole.SECURITY})

EVENT_ROLES: dict[str, frozenset[UserRole]] = {
    VISITOR_CHECKIN: _DESK_ROLES,
    VISITOR_CHECKOUT: _DESK_ROLES,
    EMERGENCY_ALERT: frozenset({UserRole.ADMIN, UserRole.SECURITY}),
    OCCUPANCY_UPDATE: _DESK_ROLES,
}


class RealtimeGateway(LoggingMixin):
    """Routes inbound client events to services."""

    def __init__(
        self,
        router: NotificationRouter,
        registry: VisitRegistryService,
        occupancy: OccupancyTracker,
        emergency: EmergencyService,
    ) -> None:
        self._router = router
        self._registry = registry
        self._occupancy = occupancy
        self._emergency = emergency
        self._init_logger(component="realtime")

    async def handle(
        self,
        connection_id: str,
        event_type: str,
        payload: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Process one inbound event.

        Returns:
            Acknowledgement payload for the sender.

        Raises:
            UnknownConnectionError: The connection is not registered.
            RealtimeRateLimitError: Over the per-type rate limit.
            RealtimeEventForbiddenError: The sender's role may not send it.
            VisitValidationError: Unknown event type or malformed payload.
        """
        if event_type not in EVENT_ROLES:
            raise VisitValidationError(f"Unknown event type: {event_type}", field="event")

        self._router.admit(connection_id, event_type)
        connection = self._router.get_connection(connection_id)
        if connection.role not in EVENT_ROLES[event_type]:
            raise RealtimeEventForbiddenError(connection_id, event_type, connection.role.value)

        log = self._log_operation(
            "handle",
            connection_id=connection_id,
            event_type=event_type,
            user_id=str(connection.user_id),
        )
        log.debug("realtime_event_received")

        if event_type == VISITOR_CHECKIN:
            if payload.get("qr_token"):
                visit = await self._registry.check_in_by_token(
                    str(payload["qr_token"]), connection.user_id
                )
            else:
                visit = await self._registry.check_in(
                    _uuid(payload, "visit_id"), connection.user_id
                )
            return {"status": "ok", "visit": visit.to_dict()}

        if event_type == VISITOR_CHECKOUT:
            visit = await self._registry.check_out(
                _uuid(payload, "visit_id"),
                connection.user_id,
                rating=payload.get("rating"),
                feedback=payload.get("feedback"),
            )
            return {"status": "ok", "visit": visit.to_dict()}

        if event_type == EMERGENCY_ALERT:
            report = await self._emergency.declare(
                triggered_by=connection.user_id,
                role=connection.role,
                emergency_type=str(payload.get("type", "")),
                message=str(payload.get("message", "")),
                location=payload.get("location"),
            )
            return {"status": "ok", "delivered": report.delivered_count}

        return {"status": "ok", "occupancy": self._occupancy.snapshot().to_dict()}


def _uuid(payload: Mapping[str, Any], key: str) -> UUID:
    value = payload.get(key)
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise VisitValidationError(f"{key} must be a UUID", field=key) from exc
