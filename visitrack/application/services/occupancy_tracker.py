"""Occupancy tracker.

Live count of checked-in visits, derived purely from committed visit
transitions. The counter has no independent source of truth: rebuild() or
replay() reproduce it from visits or transitions at any time.

apply() runs synchronously inside the registry's unit of work, after the
audit entry is stored, so reads never observe a transition that was rolled
back. Reads take no lock.
"""

from __future__ import annotations

from collections.abc import Iterable

from visitrack.application.ports.event_publisher import EventPublisherProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.services.base import LoggingMixin
from visitrack.domain.events.occupancy import OccupancyAlertEvent, OccupancyChangedEvent
from visitrack.domain.models.occupancy import OccupancySnapshot
from visitrack.domain.models.visit import Visit, VisitStatus, VisitTransition
from visitrack.infrastructure.monitoring.metrics import get_metrics_collector

DEFAULT_MAX_OCCUPANCY: int = 100
DEFAULT_ALERT_THRESHOLD: float = 0.9


class OccupancyTracker(LoggingMixin):
    """Counts visitors on site and raises occupancy events.

    Attributes:
        max_occupancy: Capacity used for rate and snapshot.
        alert_threshold: Rate at which the admin alert fires (upward only).
    """

    def __init__(
        self,
        time_authority: TimeAuthorityProtocol,
        publisher: EventPublisherProtocol | None = None,
        max_occupancy: int = DEFAULT_MAX_OCCUPANCY,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    ) -> None:
        self._time = time_authority
        self._publisher = publisher
        self.max_occupancy = max_occupancy
        self.alert_threshold = alert_threshold
        self._current = 0
        self._alert_armed = True
        self._init_logger(component="occupancy")

    def current(self) -> int:
        return self._current

    def rate(self, max_occupancy: int | None = None) -> float:
        """Current / capacity; 0.0 when capacity is not positive."""
        capacity = self.max_occupancy if max_occupancy is None else max_occupancy
        return self._current / capacity if capacity > 0 else 0.0

    def snapshot(self) -> OccupancySnapshot:
        return OccupancySnapshot.compute(self._current, self.max_occupancy)

    def apply(self, transition: VisitTransition) -> int:
        """Apply a committed transition and publish the change, if any.

        Returns:
            The count after the transition.
        """
        delta = _delta(transition.from_status, transition.to_status)
        if delta == 0:
            return self._current

        if self._current + delta < 0:
            self._log_operation("apply", visit_id=str(transition.visit_id)).warning(
                "occupancy_underflow_ignored",
                from_status=transition.from_status.value,
                to_status=transition.to_status.value,
            )
            return self._current

        self._current += delta
        get_metrics_collector().set_occupancy(self._current)
        self._publish_change()
        return self._current

    def rebuild(self, visits: Iterable[Visit]) -> int:
        """Reset the count from the set of visits. Publishes nothing."""
        self._current = sum(1 for v in visits if v.status == VisitStatus.CHECKED_IN)
        self._alert_armed = self.rate() < self.alert_threshold
        get_metrics_collector().set_occupancy(self._current)
        self._log_operation("rebuild").info("occupancy_rebuilt", current=self._current)
        return self._current

    def replay(self, transitions: Iterable[VisitTransition]) -> int:
        """Reset the count from an ordered transition history. Publishes nothing."""
        count = 0
        for transition in transitions:
            count = max(0, count + _delta(transition.from_status, transition.to_status))
        self._current = count
        self._alert_armed = self.rate() < self.alert_threshold
        get_metrics_collector().set_occupancy(self._current)
        return self._current

    def _publish_change(self) -> None:
        snapshot = self.snapshot()
        now = self._time.now()

        alert = False
        if snapshot.rate >= self.alert_threshold:
            if self._alert_armed:
                alert = True
                self._alert_armed = False
        else:
            self._alert_armed = True

        if self._publisher is None:
            return
        self._publisher.publish(OccupancyChangedEvent(snapshot=snapshot, changed_at=now))
        if alert:
            self._log_operation("apply").warning(
                "occupancy_alert_raised",
                current=snapshot.current,
                max_occupancy=snapshot.max_occupancy,
                rate=snapshot.rate,
            )
            self._publisher.publish(
                OccupancyAlertEvent(
                    snapshot=snapshot,
                    threshold=self.alert_threshold,
                    raised_at=now,
                )
            )


def _delta(from_status: VisitStatus, to_status: VisitStatus) -> int:
    if from_status == to_status:
        return 0
    if to_status == VisitStatus.CHECKED_IN:
        return 1
    if from_status == VisitStatus.CHECKED_IN:
        return -1
    return 0
