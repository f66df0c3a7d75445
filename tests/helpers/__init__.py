"""Test helpers for visitrack tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    RecordingPublisher: Event publisher that keeps what it is given
    seed: Visitor, consent and staff seeding against a container
    metric_value: Read a sample back from the metrics registry

Usage:
    from tests.helpers import FakeTimeAuthority
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.metrics import metric_value
from tests.helpers.recording_publisher import RecordingPublisher

__all__ = ["FakeTimeAuthority", "RecordingPublisher", "metric_value"]
