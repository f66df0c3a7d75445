"""structlog setup for visitrack processes.

``configure_structlog("production")`` writes one JSON object per line,
anything else gets the coloured dev console. A production line looks like:

    {"event": "visitor_checked_in", "level": "info",
     "timestamp": "2026-03-02T10:05:00.000000Z",
     "correlation_id": "...", "service": "VisitRegistryService",
     "component": "visits", "visit_id": "..."}

Visitor contact and identity fields never reach the log in clear text:
``mask_personal_data`` replaces them before rendering. The level comes from
LOG_LEVEL (default INFO) unless passed explicitly.
"""

import logging
import os
from typing import Any, cast

import structlog
from structlog.typing import Processor

from visitrack.infrastructure.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"

PERSONAL_DATA_KEYS = frozenset({"email", "phone", "national_id", "address", "ip_address"})
MASK = "***"


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return resolved if isinstance(resolved, int) else logging.INFO


def mask_personal_data(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace visitor personal data with a fixed mask."""
    for key in PERSONAL_DATA_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def configure_structlog(environment: str = "production", level: str | None = None) -> None:
    """Install the visitrack processor chain. Call once, at startup."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        cast(Processor, correlation_id_processor),
        cast(Processor, mask_personal_data),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_service(service_name: str, component: str = "visits") -> structlog.BoundLogger:
    """Logger pre-bound with ``service`` and ``component``."""
    return structlog.get_logger().bind(service=service_name, component=component)
