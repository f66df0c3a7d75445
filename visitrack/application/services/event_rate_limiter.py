"""Sliding-window rate limiter for inbound real-time events.

Limits are per connection and per event type. Over-limit events are
rejected with RealtimeRateLimitError, never queued.
"""

from __future__ import annotations

from collections import deque
from datetime import timedelta

from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.domain.errors.notification import RealtimeRateLimitError

DEFAULT_RATE_LIMIT: int = 20
DEFAULT_WINDOW_SECONDS: int = 60


class EventRateLimiter:
    """Sliding-window limiter keyed by (connection_id, event_type).

    Attributes:
        limit: Events allowed per window.
        window_seconds: Window length.
    """

    def __init__(
        self,
        time_authority: TimeAuthorityProtocol,
        limit: int = DEFAULT_RATE_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        self._time = time_authority
        self.limit = limit
        self.window_seconds = window_seconds
        self._events: dict[tuple[str, str], deque[float]] = {}

    def admit(self, connection_id: str, event_type: str) -> int:
        """Count one event against the window.

        Returns:
            Events remaining in the current window.

        Raises:
            RealtimeRateLimitError: The window is full.
        """
        now = self._time.monotonic()
        window = self._events.setdefault((connection_id, event_type), deque())
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

        if len(window) >= self.limit:
            wait = window[0] + self.window_seconds - now
            raise RealtimeRateLimitError(
                connection_id=connection_id,
                event_type=event_type,
                limit=self.limit,
                retry_at=self._time.after(timedelta(seconds=max(wait, 0.0))),
            )

        window.append(now)
        return self.limit - len(window)

    def forget(self, connection_id: str) -> None:
        """Drop all windows for a closed connection."""
        for key in [k for k in self._events if k[0] == connection_id]:
            del self._events[key]
