"""Real-time fan-out keeps moving while offline escalation is stuck."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.seed import add_staff, add_visitor
from visitrack.bootstrap.container import build_container
from visitrack.config.visitrack_config import VisitrackConfig
from visitrack.domain.models.notification import DeliveryChannel, ServerPush
from visitrack.domain.models.recipient import UserRole
from visitrack.infrastructure.stubs.channel_sender_stub import ChannelSenderStub


async def next_push_of_type(queue: asyncio.Queue[ServerPush], push_type: str) -> ServerPush:
    while True:
        push = await queue.get()
        if push.type == push_type:
            return push


class TestFanoutIsolation:
    @pytest.mark.asyncio
    async def test_slow_host_email_does_not_hold_front_desk_push(
        self, fake_time: FakeTimeAuthority, test_config: VisitrackConfig
    ) -> None:
        email = ChannelSenderStub(DeliveryChannel.EMAIL, hang_seconds=1.0)
        container = build_container(
            config=replace(test_config, channel_timeout_seconds=5.0),
            time_authority=fake_time,
            senders=[email],
        )
        host = add_staff(container, UserRole.HOST)
        desk = add_staff(container, UserRole.RECEPTIONIST, email="desk@example.com")
        visitor = await add_visitor(container)
        desk_conn = await container.router.connect(
            "front-desk", desk.user_id, UserRole.RECEPTIONIST
        )
        registration = await container.registry.pre_register(
            visitor_id=visitor.id, host_id=host.user_id, purpose="Board meeting"
        )
        await container.outbox.start()
        try:
            await container.registry.check_in(registration.visit.id, desk.user_id)

            # The host is offline, so their arrival notice is stuck in email
            arrived = await asyncio.wait_for(
                next_push_of_type(desk_conn.queue, "visitor_arrived"), timeout=0.5
            )
            assert arrived.type == "visitor_arrived"
            assert email.sent == []
        finally:
            await container.outbox.stop(drain=True)

        assert [m.recipient.user_id for m in email.sent] == [host.user_id]
        stored = await container.registry.get_visit(registration.visit.id)
        channels = {(e.channel, e.recipient_id) for e in stored.notifications_sent}
        assert ("email", host.user_id) in channels
        assert ("realtime", desk.user_id) in channels
