"""Prometheus metrics for visitrack.

Every series carries ``service`` (SERVICE_NAME, default "visitrack") and
``environment`` (ENVIRONMENT, default "development"):

    occupancy_current
    notification_attempts_total{channel,outcome}
    outbox_dropped_total{notification_type}
    audit_entries_total{category,outcome}
    sweep_runs_total{sweep,result}
    http_requests_total{method,endpoint,status}
    http_request_duration_seconds{method,endpoint}

Services record through the process-wide collector from
get_metrics_collector(); tests that need isolation build their own
MetricsCollector on a fresh CollectorRegistry.
"""

import os
import threading

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

BASE_LABELS = ("service", "environment")

# Gate and desk requests are short; anything past 2.5s is an incident
REQUEST_DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)


class MetricsCollector:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._labels = {
            "service": os.environ.get("SERVICE_NAME", "visitrack"),
            "environment": os.environ.get("ENVIRONMENT", "development"),
        }

        self.occupancy_current = Gauge(
            "occupancy_current",
            "Visitors currently checked in",
            BASE_LABELS,
            registry=self._registry,
        )
        self.notification_attempts_total = Counter(
            "notification_attempts_total",
            "Notification channel attempts by outcome",
            BASE_LABELS + ("channel", "outcome"),
            registry=self._registry,
        )
        self.outbox_dropped_total = Counter(
            "outbox_dropped_total",
            "Notifications dropped because the outbox was full",
            BASE_LABELS + ("notification_type",),
            registry=self._registry,
        )
        self.audit_entries_total = Counter(
            "audit_entries_total",
            "Audit entries written",
            BASE_LABELS + ("category", "outcome"),
            registry=self._registry,
        )
        self.sweep_runs_total = Counter(
            "sweep_runs_total",
            "Sweep runs by result (success, error, skipped)",
            BASE_LABELS + ("sweep", "result"),
            registry=self._registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route and status code",
            BASE_LABELS + ("method", "endpoint", "status"),
            registry=self._registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency",
            BASE_LABELS + ("method", "endpoint"),
            buckets=REQUEST_DURATION_BUCKETS,
            registry=self._registry,
        )

    def _base_labels(self) -> dict[str, str]:
        return dict(self._labels)

    def set_occupancy(self, current: int) -> None:
        self.occupancy_current.labels(**self._labels).set(current)

    def increment_notification_attempts(self, channel: str, outcome: str) -> None:
        self.notification_attempts_total.labels(
            **self._labels, channel=channel, outcome=outcome
        ).inc()

    def increment_outbox_dropped(self, notification_type: str) -> None:
        self.outbox_dropped_total.labels(
            **self._labels, notification_type=notification_type
        ).inc()

    def increment_audit_entries(self, category: str, outcome: str) -> None:
        self.audit_entries_total.labels(
            **self._labels, category=category, outcome=outcome
        ).inc()

    def increment_sweep_runs(self, sweep: str, result: str) -> None:
        self.sweep_runs_total.labels(**self._labels, sweep=sweep, result=result).inc()

    def observe_request(
        self, method: str, endpoint: str, status: int, duration_seconds: float
    ) -> None:
        """Record one HTTP request.

        ``endpoint`` should be the route template ("/visits/{visit_id}"),
        never the raw path, to keep label cardinality bounded.
        """
        self.http_requests_total.labels(
            **self._labels, method=method, endpoint=endpoint, status=str(status)
        ).inc()
        self.http_request_duration_seconds.labels(
            **self._labels, method=method, endpoint=endpoint
        ).observe(duration_seconds)

    def get_registry(self) -> CollectorRegistry:
        return self._registry


_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _collector
    if _collector is None:
        with _collector_lock:
            if _collector is None:
                _collector = MetricsCollector()
    return _collector


def generate_metrics() -> bytes:
    """Exposition text for the /metrics endpoint."""
    return generate_latest(get_metrics_collector().get_registry())


def reset_metrics_collector() -> None:
    """Forget the process-wide collector. Tests only."""
    global _collector
    with _collector_lock:
        _collector = None
