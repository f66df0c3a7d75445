"""Domain errors for visitrack.

All exceptions inherit from VisitrackError.
"""

from visitrack.domain.errors.audit import AuditEntryNotFoundError, AuditWriteError
from visitrack.domain.errors.common import (
    NotFoundError,
    PolicyViolationError,
    StateConflictError,
    VisitValidationError,
)
from visitrack.domain.errors.consent import (
    ConsentAlreadyWithdrawnError,
    ConsentError,
    ConsentNotRenewableError,
    ConsentRecordNotFoundError,
)
from visitrack.domain.errors.emergency import EmergencyNotAuthorizedError
from visitrack.domain.errors.notification import (
    DeliveryError,
    DeliveryExhaustedError,
    RealtimeEventForbiddenError,
    RealtimeRateLimitError,
    UnknownConnectionError,
)
from visitrack.domain.errors.visit import (
    AlreadyCheckedInError,
    ConsentMissingError,
    HostNotFoundError,
    InvalidTokenError,
    InvalidVisitTransitionError,
    NotCheckedInError,
    TokenExpiredError,
    VisitActiveError,
    VisitCompletedError,
    VisitNotFoundError,
    VisitorAlreadyOnSiteError,
    VisitorBlacklistedError,
    VisitorNotFoundError,
)

__all__: list[str] = [
    "AlreadyCheckedInError",
    "AuditEntryNotFoundError",
    "AuditWriteError",
    "ConsentAlreadyWithdrawnError",
    "ConsentError",
    "ConsentMissingError",
    "ConsentNotRenewableError",
    "ConsentRecordNotFoundError",
    "DeliveryError",
    "DeliveryExhaustedError",
    "EmergencyNotAuthorizedError",
    "HostNotFoundError",
    "InvalidTokenError",
    "InvalidVisitTransitionError",
    "NotCheckedInError",
    "NotFoundError",
    "PolicyViolationError",
    "RealtimeEventForbiddenError",
    "RealtimeRateLimitError",
    "StateConflictError",
    "TokenExpiredError",
    "UnknownConnectionError",
    "VisitActiveError",
    "VisitCompletedError",
    "VisitNotFoundError",
    "VisitValidationError",
    "VisitorAlreadyOnSiteError",
    "VisitorBlacklistedError",
    "VisitorNotFoundError",
]
