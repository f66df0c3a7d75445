"""Clock port.

Nothing under visitrack.application reads the system clock itself. Token
expiry, overdue detection, consent expiry and retention dates all go
through an injected TimeAuthorityProtocol, which lets tests pin the clock
with FakeTimeAuthority and step it past a deadline.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta


class TimeAuthorityProtocol(ABC):
    """Wall clock plus a monotonic counter.

    SystemTimeAuthority (visitrack.infrastructure.adapters) is the
    production implementation.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current time. Always UTC in visitrack."""
        ...

    @abstractmethod
    def utcnow(self) -> datetime: ...

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards.

        Only meaningful as a difference between two readings.
        """
        ...

    def after(self, delta: timedelta) -> datetime:
        """The wall-clock moment ``delta`` from now."""
        return self.now() + delta
