"""Observability: structured logging and correlation IDs."""

from visitrack.infrastructure.observability.correlation import (
    correlation_id_processor,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from visitrack.infrastructure.observability.logging import (
    configure_structlog,
    get_logger_for_service,
)

__all__ = [
    "configure_structlog",
    "correlation_id_processor",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_logger_for_service",
    "set_correlation_id",
]
