"""LoggingMixin shared by the application services.

A service calls ``self._init_logger(component=...)`` once in ``__init__``
and then asks for a per-operation logger wherever it does work:

    log = self._log_operation("check_in", visit_id=visit.id)
    log.info("visitor_checked_in", badge=visit.badge_number)

Context values that are UUIDs are rendered as strings and ``None`` values
are left out, so callers can pass model attributes straight through.
"""

from uuid import UUID

import structlog

from visitrack.infrastructure.observability.correlation import get_correlation_id
from visitrack.infrastructure.observability.logging import get_logger_for_service


def _loggable(context: dict[str, object]) -> dict[str, object]:
    return {
        key: str(value) if isinstance(value, UUID) else value
        for key, value in context.items()
        if value is not None
    }


class LoggingMixin:
    """Gives a service a ``service``/``component`` bound structlog logger.

    Attributes:
        _log: Logger bound once per service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "visits") -> None:
        self._log = get_logger_for_service(type(self).__name__, component)

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        """Logger for one operation, carrying the current correlation ID.

        The ID is read at call time, so take a fresh logger per operation
        rather than caching one.
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **_loggable(context),
        )
