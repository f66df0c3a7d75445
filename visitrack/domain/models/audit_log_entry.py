"""Audit log entry domain model.

The audit trail is append-only. The single permitted mutation is
anonymization: an irreversible redaction of direct identifiers that keeps the
statistical fields (category, severity, outcome, risk level, action) intact.

Details are closed, tagged variants rather than an open bag of keys, so each
action kind carries exactly the fields it needs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union
from uuid import UUID


class AuditCategory(str, Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DATA_ACCESS = "data_access"
    DATA_MODIFICATION = "data_modification"
    SYSTEM_ACCESS = "system_access"
    SECURITY = "security"
    PRIVACY = "privacy"
    COMPLIANCE = "compliance"
    ERROR = "error"


class AuditSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    WARNING = "warning"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Keys treated as direct identifiers inside details and snapshots
PII_KEYS: frozenset[str] = frozenset(
    {
        "email",
        "phone",
        "national_id",
        "address",
        "first_name",
        "last_name",
        "name",
        "visitor_name",
        "full_name",
    }
)

# Operator-entered text that may name or describe a person; masked, not removed
FREE_TEXT_KEYS: frozenset[str] = frozenset(
    {"purpose", "reason", "cancellation_reason", "blacklist_reason", "notes", "message"}
)

REDACTED = "[redacted]"


def redact_pii(value: Any) -> Any:
    """Copy of `value` without PII keys and with free text masked, at any depth."""
    if isinstance(value, dict):
        return {
            k: REDACTED if k in FREE_TEXT_KEYS and v else redact_pii(v)
            for k, v in value.items()
            if k not in PII_KEYS
        }
    if isinstance(value, (list, tuple)):
        return [redact_pii(v) for v in value]
    return value


# =============================================================================
# Details variants
# =============================================================================


@dataclass(frozen=True, eq=True)
class VisitTransitionDetails:
    """A visit status change or flag change."""

    from_status: str | None
    to_status: str
    purpose: str | None = None
    reason: str | None = None
    kind: Literal["visit_transition"] = "visit_transition"


@dataclass(frozen=True, eq=True)
class PolicyViolationDetails:
    """A refusal on security or privacy grounds."""

    policy: str
    reason: str
    attempted_action: str
    kind: Literal["policy_violation"] = "policy_violation"


@dataclass(frozen=True, eq=True)
class ConsentChangeDetails:
    """A consent ledger mutation."""

    consent_type: str
    status: str
    version: str
    legal_basis: str
    record_id: str
    parent_consent_id: str | None = None
    reason: str | None = None
    kind: Literal["consent_change"] = "consent_change"


@dataclass(frozen=True, eq=True)
class NotificationDeliveryDetails:
    """Summary of every channel attempt for one notification."""

    notification_id: str
    notification_type: str
    priority: str
    target: str
    attempts: tuple[dict[str, Any], ...]
    delivered: int
    failed: int
    kind: Literal["notification_delivery"] = "notification_delivery"


@dataclass(frozen=True, eq=True)
class EmergencyDetails:
    """An emergency declaration."""

    emergency_type: str
    message: str
    location: str | None
    priority: str
    delivered: int
    kind: Literal["emergency"] = "emergency"


AuditDetails = Union[
    VisitTransitionDetails,
    PolicyViolationDetails,
    ConsentChangeDetails,
    NotificationDeliveryDetails,
    EmergencyDetails,
]


def details_to_dict(details: AuditDetails | None) -> dict[str, Any]:
    if details is None:
        return {}
    data = asdict(details)
    if "attempts" in data:
        data["attempts"] = list(data["attempts"])
    return data


@dataclass(frozen=True, eq=True)
class RequestContext:
    """Request metadata captured with an entry; nulled on anonymization."""

    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None
    request_id: str | None = None


# =============================================================================
# Entry
# =============================================================================


@dataclass(frozen=True, eq=True)
class AuditLogEntry:
    """One record in the audit trail.

    Attributes:
        id: UUIDv7 (time-ordered) identifier.
        action: Upper-snake action name, e.g. VISITOR_CHECKED_IN.
        category: Audit category.
        severity: Operational severity.
        outcome: success, failure, error or warning.
        risk_level: Compliance risk rating.
        created_at: When the action happened.
        retention_date: When the entry becomes eligible for anonymization.
        actor_id: User who acted; None for system actions.
        visitor_id / visit_id: Subjects of the action.
        details: Closed variant describing the action.
        before / after: Value snapshots around a modification.
        ip_address / user_agent / session_id / request_id: Request context.
        is_anonymized / anonymized_at: Redaction record.
    """

    id: UUID
    action: str
    category: AuditCategory
    severity: AuditSeverity
    outcome: AuditOutcome
    risk_level: RiskLevel
    created_at: datetime
    retention_date: datetime
    actor_id: UUID | None = field(default=None)
    visitor_id: UUID | None = field(default=None)
    visit_id: UUID | None = field(default=None)
    details: AuditDetails | None = field(default=None)
    before: dict[str, Any] | None = field(default=None)
    after: dict[str, Any] | None = field(default=None)
    ip_address: str | None = field(default=None)
    user_agent: str | None = field(default=None)
    session_id: str | None = field(default=None)
    request_id: str | None = field(default=None)
    is_anonymized: bool = field(default=False)
    anonymized_at: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        if not 1 <= len(self.action) <= 100:
            raise ValueError("Audit action must be 1-100 characters")

    # Frozen dataclasses with dict fields are not hashable by default
    __hash__ = None  # type: ignore[assignment]

    def is_retention_expired(self, at: datetime) -> bool:
        return self.retention_date < at

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)

    def anonymized(self, at: datetime) -> AuditLogEntry:
        """Return the redacted entry. Idempotent on already anonymized entries."""
        if self.is_anonymized:
            return self
        details = self.details
        if details is not None:
            details = _redact_details(details)
        return replace(
            self,
            details=details,
            before=redact_pii(self.before) if self.before is not None else None,
            after=redact_pii(self.after) if self.after is not None else None,
            ip_address=None,
            user_agent=None,
            session_id=None,
            request_id=None,
            is_anonymized=True,
            anonymized_at=at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "action": self.action,
            "category": self.category.value,
            "severity": self.severity.value,
            "outcome": self.outcome.value,
            "risk_level": self.risk_level.value,
            "created_at": self.created_at.isoformat(),
            "retention_date": self.retention_date.isoformat(),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "visitor_id": str(self.visitor_id) if self.visitor_id else None,
            "visit_id": str(self.visit_id) if self.visit_id else None,
            "details": details_to_dict(self.details),
            "before": self.before,
            "after": self.after,
            "is_anonymized": self.is_anonymized,
        }


def _redact_details(details: AuditDetails) -> AuditDetails:
    # Only free-text fields can carry identifiers; structured codes stay
    if isinstance(details, NotificationDeliveryDetails):
        return replace(details, attempts=tuple(redact_pii(a) for a in details.attempts))
    if isinstance(details, VisitTransitionDetails):
        return replace(
            details,
            purpose=_mask(details.purpose),
            reason=_mask(details.reason),
        )
    if isinstance(details, ConsentChangeDetails):
        return replace(details, reason=_mask(details.reason))
    if isinstance(details, PolicyViolationDetails):
        return replace(details, reason=REDACTED)
    if isinstance(details, EmergencyDetails):
        return replace(details, message=REDACTED)
    return details


def _mask(text: str | None) -> str | None:
    return REDACTED if text else text
