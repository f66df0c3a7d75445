"""Read values back out of the metrics registry."""

from __future__ import annotations

from visitrack.infrastructure.monitoring.metrics import get_metrics_collector


def metric_value(name: str, **labels: str) -> float:
    """Sample value for `name` with the collector's base labels, 0.0 if absent."""
    collector = get_metrics_collector()
    value = collector.get_registry().get_sample_value(
        name, {**collector._base_labels(), **labels}
    )
    return value or 0.0
