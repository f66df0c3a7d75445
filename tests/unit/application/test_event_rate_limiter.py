"""Unit tests for EventRateLimiter."""

from __future__ import annotations

from datetime import timedelta

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from visitrack.application.services.event_rate_limiter import EventRateLimiter
from visitrack.domain.errors import RealtimeRateLimitError


class TestEventRateLimiter:
    """Tests for the sliding window."""

    def test_admits_up_to_limit(self, fake_time: FakeTimeAuthority) -> None:
        limiter = EventRateLimiter(fake_time, limit=3, window_seconds=60)
        assert [limiter.admit("c1", "visitor_checkin") for _ in range(3)] == [2, 1, 0]

        with pytest.raises(RealtimeRateLimitError) as exc_info:
            limiter.admit("c1", "visitor_checkin")
        assert exc_info.value.retry_at == fake_time.now() + timedelta(seconds=60)

    def test_window_slides(self, fake_time: FakeTimeAuthority) -> None:
        limiter = EventRateLimiter(fake_time, limit=2, window_seconds=60)
        limiter.admit("c1", "visitor_checkin")
        fake_time.advance(30)
        limiter.admit("c1", "visitor_checkin")

        fake_time.advance(30)
        assert limiter.admit("c1", "visitor_checkin") == 0

    def test_limits_are_per_connection_and_type(self, fake_time: FakeTimeAuthority) -> None:
        limiter = EventRateLimiter(fake_time, limit=1, window_seconds=60)
        limiter.admit("c1", "visitor_checkin")
        limiter.admit("c1", "visitor_checkout")
        limiter.admit("c2", "visitor_checkin")

        with pytest.raises(RealtimeRateLimitError):
            limiter.admit("c1", "visitor_checkin")

    def test_forget_resets_connection(self, fake_time: FakeTimeAuthority) -> None:
        limiter = EventRateLimiter(fake_time, limit=1, window_seconds=60)
        limiter.admit("c1", "visitor_checkin")
        limiter.forget("c1")
        assert limiter.admit("c1", "visitor_checkin") == 0
