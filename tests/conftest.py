"""
Pytest configuration and shared fixtures for visitrack tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.recording_publisher import RecordingPublisher
from visitrack.bootstrap.container import VisitrackContainer, build_container, reset_container
from visitrack.config.visitrack_config import TEST_VISITRACK_CONFIG, VisitrackConfig
from visitrack.domain.models.notification import DeliveryChannel
from visitrack.infrastructure.monitoring.metrics import reset_metrics_collector
from visitrack.infrastructure.stubs.channel_sender_stub import ChannelSenderStub

SCENARIO_START = datetime(2026, 3, 2, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_singletons() -> Iterator[None]:
    """Fresh metrics collector and container for every test."""
    reset_metrics_collector()
    reset_container()
    yield
    reset_metrics_collector()
    reset_container()


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from visitrack import __version__

    return __version__


@pytest.fixture
def fake_time() -> FakeTimeAuthority:
    """Clock frozen at 10:00 UTC on the scenario day."""
    return FakeTimeAuthority(frozen_at=SCENARIO_START)


@pytest.fixture
def test_config() -> VisitrackConfig:
    return TEST_VISITRACK_CONFIG


@pytest.fixture
def email_sender() -> ChannelSenderStub:
    return ChannelSenderStub(DeliveryChannel.EMAIL)


@pytest.fixture
def sms_sender() -> ChannelSenderStub:
    return ChannelSenderStub(DeliveryChannel.SMS)


@pytest.fixture
def container(
    fake_time: FakeTimeAuthority,
    test_config: VisitrackConfig,
    email_sender: ChannelSenderStub,
    sms_sender: ChannelSenderStub,
) -> VisitrackContainer:
    """Fully wired container on in-memory stubs and the fake clock."""
    return build_container(
        config=test_config,
        time_authority=fake_time,
        senders=[email_sender, sms_sender],
    )


@pytest.fixture
def recording_publisher() -> RecordingPublisher:
    return RecordingPublisher()
