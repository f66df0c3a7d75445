"""Wall-clock time authority used in production."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from visitrack.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    """Time authority backed by the system clock.

    now() and utcnow() are both timezone-aware UTC; monotonic() is for
    measuring elapsed time only.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
