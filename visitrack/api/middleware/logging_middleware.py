"""Request logging and X-Correlation-ID handling.

A caller-supplied X-Correlation-ID is reused when it looks like an ID
(at most 128 characters of letters, digits, ``.``, ``_`` and ``-``);
otherwise the request gets a fresh one. Either way the ID is in scope for
the whole request, so audit entries written by the request carry it as
``request_id``, and it is echoed on the response. Each request is also
counted and timed in the http_request metrics, labelled by route template.
"""

import re
import time
from typing import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from visitrack.infrastructure.monitoring.metrics import get_metrics_collector
from visitrack.infrastructure.observability.correlation import (
    correlation_scope,
    generate_correlation_id,
)

CORRELATION_HEADER = "X-Correlation-ID"

_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

# Scraped often enough to drown the request log at INFO
QUIET_PATHS = frozenset({"/metrics"})


def inbound_correlation_id(request: Request) -> str:
    supplied = request.headers.get(CORRELATION_HEADER, "")
    if _VALID_CORRELATION_ID.match(supplied):
        return supplied
    return generate_correlation_id()


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        with correlation_scope(inbound_correlation_id(request)) as correlation_id:
            log = structlog.get_logger().bind(method=request.method, path=path)
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as exc:
                elapsed = time.perf_counter() - started
                get_metrics_collector().observe_request(
                    request.method, _endpoint(request), 500, elapsed
                )
                log.exception(
                    "request_failed",
                    duration_ms=round(elapsed * 1000, 2),
                    error_type=type(exc).__name__,
                )
                raise

            elapsed = time.perf_counter() - started
            get_metrics_collector().observe_request(
                request.method, _endpoint(request), response.status_code, elapsed
            )
            emit = log.debug if path in QUIET_PATHS else log.info
            emit(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round(elapsed * 1000, 2),
            )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _endpoint(request: Request) -> str:
    # Set by the router once a route matched
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")
