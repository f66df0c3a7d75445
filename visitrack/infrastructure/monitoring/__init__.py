"""Operational monitoring."""

from visitrack.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    MetricsCollector,
    generate_metrics,
    get_metrics_collector,
    reset_metrics_collector,
)

__all__ = [
    "METRICS_CONTENT_TYPE",
    "MetricsCollector",
    "generate_metrics",
    "get_metrics_collector",
    "reset_metrics_collector",
]
