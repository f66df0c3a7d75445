"""Unit tests for RealtimeGateway."""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.seed import add_staff, add_visitor
from visitrack.bootstrap.container import VisitrackContainer, build_container
from visitrack.config.visitrack_config import VisitrackConfig
from visitrack.domain.errors import (
    RealtimeEventForbiddenError,
    RealtimeRateLimitError,
    UnknownConnectionError,
    VisitValidationError,
)
from visitrack.domain.models.recipient import UserRole


@pytest.fixture
async def desk(container: VisitrackContainer) -> str:
    receptionist = add_staff(container, UserRole.RECEPTIONIST)
    await container.router.connect("desk", receptionist.user_id, UserRole.RECEPTIONIST)
    return "desk"


async def pre_register(container: VisitrackContainer):  # type: ignore[no-untyped-def]
    visitor = await add_visitor(container)
    host = add_staff(container)
    return await container.registry.pre_register(visitor.id, host.user_id, "Review")


class TestVisitorEvents:
    """Tests for check-in and check-out over the real-time channel."""

    @pytest.mark.asyncio
    async def test_checkin_by_visit_id(self, container: VisitrackContainer, desk: str) -> None:
        result = await pre_register(container)

        ack = await container.gateway.handle(
            desk, "visitor_checkin", {"visit_id": str(result.visit.id)}
        )

        assert ack["status"] == "ok"
        assert ack["visit"]["status"] == "checked_in"
        connection = container.router.get_connection(desk)
        assert ack["visit"]["checked_in_by"] == str(connection.user_id)

    @pytest.mark.asyncio
    async def test_checkin_by_token_then_checkout(
        self, container: VisitrackContainer, desk: str
    ) -> None:
        result = await pre_register(container)

        await container.gateway.handle(desk, "visitor_checkin", {"qr_token": result.qr_token})
        ack = await container.gateway.handle(
            desk, "visitor_checkout", {"visit_id": str(result.visit.id), "rating": 5}
        )

        assert ack["visit"]["status"] == "checked_out"
        assert ack["visit"]["rating"] == 5

    @pytest.mark.asyncio
    async def test_operator_from_payload_is_ignored(
        self, container: VisitrackContainer, desk: str
    ) -> None:
        result = await pre_register(container)
        ack = await container.gateway.handle(
            desk,
            "visitor_checkin",
            {"visit_id": str(result.visit.id), "operator_id": str(uuid4())},
        )
        assert ack["visit"]["checked_in_by"] == str(container.router.get_connection(desk).user_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", ["5", 4.5, True])
    async def test_non_integer_rating_is_rejected(
        self, container: VisitrackContainer, desk: str, rating: object
    ) -> None:
        result = await pre_register(container)
        await container.gateway.handle(desk, "visitor_checkin", {"qr_token": result.qr_token})

        with pytest.raises(VisitValidationError, match="integer"):
            await container.gateway.handle(
                desk, "visitor_checkout", {"visit_id": str(result.visit.id), "rating": rating}
            )

        stored = await container.registry.get_visit(result.visit.id)
        assert stored.status.value == "checked_in"
        assert container.occupancy.current() == 1

    @pytest.mark.asyncio
    async def test_malformed_visit_id(self, container: VisitrackContainer, desk: str) -> None:
        with pytest.raises(VisitValidationError):
            await container.gateway.handle(desk, "visitor_checkout", {"visit_id": "nope"})


class TestAuthorization:
    """Tests for role checks and limits."""

    @pytest.mark.asyncio
    async def test_unknown_event_type(self, container: VisitrackContainer, desk: str) -> None:
        with pytest.raises(VisitValidationError):
            await container.gateway.handle(desk, "teleport", {})

    @pytest.mark.asyncio
    async def test_unknown_connection(self, container: VisitrackContainer) -> None:
        with pytest.raises(UnknownConnectionError):
            await container.gateway.handle("ghost", "occupancy_update", {})

    @pytest.mark.asyncio
    async def test_host_cannot_check_in(self, container: VisitrackContainer) -> None:
        host = add_staff(container)
        await container.router.connect("host", host.user_id, UserRole.HOST)

        with pytest.raises(RealtimeEventForbiddenError):
            await container.gateway.handle("host", "visitor_checkin", {"visit_id": str(uuid4())})

    @pytest.mark.asyncio
    async def test_receptionist_cannot_declare_emergency(
        self, container: VisitrackContainer, desk: str
    ) -> None:
        with pytest.raises(RealtimeEventForbiddenError):
            await container.gateway.handle(
                desk, "emergency_alert", {"type": "fire", "message": "Go"}
            )

    @pytest.mark.asyncio
    async def test_rate_limited(
        self, fake_time: FakeTimeAuthority, test_config: VisitrackConfig
    ) -> None:
        container = build_container(
            config=replace(test_config, realtime_rate_limit=2),
            time_authority=fake_time,
            senders=[],
        )
        admin = add_staff(container, UserRole.ADMIN)
        await container.router.connect("admin", admin.user_id, UserRole.ADMIN)

        await container.gateway.handle("admin", "occupancy_update", {})
        await container.gateway.handle("admin", "occupancy_update", {})
        with pytest.raises(RealtimeRateLimitError):
            await container.gateway.handle("admin", "occupancy_update", {})

        fake_time.advance(container.config.realtime_rate_window_seconds)
        ack = await container.gateway.handle("admin", "occupancy_update", {})
        assert ack["occupancy"] == {"current": 0, "max": 100, "rate": 0.0}


class TestEmergencyEvent:
    @pytest.mark.asyncio
    async def test_security_declares_emergency(self, container: VisitrackContainer) -> None:
        guard = add_staff(container, UserRole.SECURITY)
        await container.router.connect("guard", guard.user_id, UserRole.SECURITY)

        ack = await container.gateway.handle(
            "guard", "emergency_alert", {"type": "fire", "message": "Leave now", "location": "B2"}
        )

        assert ack == {"status": "ok", "delivered": 1}
