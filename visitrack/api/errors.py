"""RFC 7807 mapping of the domain error hierarchy.

Handlers are registered once on the app, so routes only call services and
never translate errors themselves. The first matching row wins; leaf
classes come before their bases.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from structlog import get_logger

from visitrack.domain.errors import (
    AlreadyCheckedInError,
    AuditWriteError,
    ConsentError,
    ConsentMissingError,
    DeliveryError,
    EmergencyNotAuthorizedError,
    InvalidTokenError,
    InvalidVisitTransitionError,
    NotCheckedInError,
    NotFoundError,
    RealtimeEventForbiddenError,
    RealtimeRateLimitError,
    StateConflictError,
    TokenExpiredError,
    UnknownConnectionError,
    VisitActiveError,
    VisitCompletedError,
    VisitorAlreadyOnSiteError,
    VisitorBlacklistedError,
    VisitValidationError,
)
from visitrack.domain.exceptions import VisitrackError

logger = get_logger()

PROBLEM_CONTENT_TYPE = "application/problem+json"

ERROR_MAP: list[tuple[type[VisitrackError], int, str, str]] = [
    (VisitValidationError, 422, "validation", "Validation Error"),
    (NotFoundError, 404, "not-found", "Not Found"),
    (VisitorAlreadyOnSiteError, 409, "visitor-on-site", "Visitor Already On Site"),
    (AlreadyCheckedInError, 400, "already-checked-in", "Already Checked In"),
    (VisitCompletedError, 400, "visit-completed", "Visit Completed"),
    (NotCheckedInError, 400, "not-checked-in", "Not Checked In"),
    (VisitActiveError, 400, "visit-active", "Visit Active"),
    (InvalidVisitTransitionError, 400, "invalid-transition", "Invalid Transition"),
    (TokenExpiredError, 400, "token-expired", "QR Token Expired"),
    (InvalidTokenError, 400, "invalid-token", "Invalid QR Token"),
    (VisitorBlacklistedError, 403, "visitor-blacklisted", "Visitor Blacklisted"),
    (ConsentMissingError, 403, "consent-missing", "Consent Missing"),
    (EmergencyNotAuthorizedError, 403, "emergency-forbidden", "Emergency Not Authorized"),
    (RealtimeEventForbiddenError, 403, "event-forbidden", "Event Forbidden"),
    (UnknownConnectionError, 404, "unknown-connection", "Unknown Connection"),
    (RealtimeRateLimitError, 429, "rate-limited", "Rate Limit Exceeded"),
    (ConsentError, 409, "consent-conflict", "Consent Conflict"),
    (StateConflictError, 409, "state-conflict", "State Conflict"),
    (DeliveryError, 502, "delivery-failed", "Delivery Failed"),
    (AuditWriteError, 503, "audit-unavailable", "Audit Trail Unavailable"),
]


def problem_for(exc: VisitrackError) -> tuple[int, str, str]:
    """Status, type slug and title for a domain error."""
    for error_type, status, slug, title in ERROR_MAP:
        if isinstance(exc, error_type):
            return status, slug, title
    return 500, "internal", "Internal Error"


async def visitrack_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, VisitrackError)
    status, slug, title = problem_for(exc)
    log = logger.bind(path=request.url.path, error_type=type(exc).__name__, status=status)
    if status >= 500:
        log.error("request_error", detail=str(exc))
    else:
        log.info("request_rejected", detail=str(exc))

    content: dict[str, object] = {
        "type": f"urn:visitrack:error:{slug}",
        "title": title,
        "status": status,
        "detail": str(exc),
        "instance": str(request.url),
    }
    if isinstance(exc, RealtimeRateLimitError):
        content["retry_at"] = exc.retry_at.isoformat()
    return JSONResponse(status_code=status, content=content, media_type=PROBLEM_CONTENT_TYPE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VisitrackError, visitrack_error_handler)
