"""Consent record domain model.

A consent record is a versioned, revocable grant-or-denial of a specific
data-processing purpose by a visitor. Records are never deleted: withdrawal
flips status, renewal links a successor through parent_consent_id.

Invariant: at most one active record per (visitor_id, consent_type). The
ledger service enforces it; the model only carries the flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ConsentType(str, Enum):
    """Closed set of consent purposes."""

    DATA_PROCESSING = "data_processing"
    PHOTO_CAPTURE = "photo_capture"
    BIOMETRIC_DATA = "biometric_data"
    MARKETING_COMMUNICATIONS = "marketing_communications"
    DATA_SHARING = "data_sharing"
    LOCATION_TRACKING = "location_tracking"
    EMERGENCY_CONTACT = "emergency_contact"


class ConsentStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    WITHDRAWN = "withdrawn"


class ConsentMethod(str, Enum):
    """How the visitor expressed the decision."""

    WEB_FORM = "web_form"
    MOBILE_APP = "mobile_app"
    PAPER_FORM = "paper_form"
    VERBAL = "verbal"
    AUTOMATIC = "automatic"


class LegalBasis(str, Enum):
    """Lawful basis for processing."""

    CONSENT = "consent"
    CONTRACT = "contract"
    LEGAL_OBLIGATION = "legal_obligation"
    VITAL_INTERESTS = "vital_interests"
    PUBLIC_TASK = "public_task"
    LEGITIMATE_INTERESTS = "legitimate_interests"


@dataclass(frozen=True, eq=True)
class ConsentRecord:
    """A single consent decision.

    Attributes:
        id: Record identifier.
        visitor_id: The visitor who decided.
        consent_type: Purpose the decision covers.
        status: granted, denied or withdrawn.
        version: Version of the consent text shown.
        text: Consent text shown to the visitor.
        method: How the decision was captured.
        legal_basis: Lawful basis for processing.
        processing_purpose: Plain-language purpose.
        created_at: When the decision was recorded.
        is_active: Whether this is the current record for its type.
        expires_at: After this instant the consent no longer counts.
        renewal_date: When the visitor should be asked again.
        parent_consent_id: Record this one renewed.
        withdrawn_at / withdrawn_reason: Withdrawal record.
        witnessed_by: Staff user who witnessed a paper/verbal decision.
    """

    id: UUID
    visitor_id: UUID
    consent_type: ConsentType
    status: ConsentStatus
    version: str
    text: str
    method: ConsentMethod
    legal_basis: LegalBasis
    processing_purpose: str
    created_at: datetime
    is_active: bool = field(default=True)
    expires_at: datetime | None = field(default=None)
    renewal_date: datetime | None = field(default=None)
    parent_consent_id: UUID | None = field(default=None)
    withdrawn_at: datetime | None = field(default=None)
    withdrawn_reason: str | None = field(default=None)
    witnessed_by: UUID | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise ValueError("Consent text cannot be empty")
        if not self.processing_purpose.strip():
            raise ValueError("Processing purpose cannot be empty")

    def is_expired(self, at: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < at

    def is_valid(self, at: datetime) -> bool:
        """Active, granted and not expired at `at`."""
        return (
            self.is_active
            and self.status == ConsentStatus.GRANTED
            and not self.is_expired(at)
        )

    def needs_renewal(self, at: datetime) -> bool:
        return self.is_active and self.renewal_date is not None and self.renewal_date <= at

    def deactivated(self) -> ConsentRecord:
        return replace(self, is_active=False)

    def withdrawn(self, at: datetime, reason: str) -> ConsentRecord:
        return replace(
            self,
            status=ConsentStatus.WITHDRAWN,
            is_active=False,
            withdrawn_at=at,
            withdrawn_reason=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "visitor_id": str(self.visitor_id),
            "consent_type": self.consent_type.value,
            "status": self.status.value,
            "version": self.version,
            "method": self.method.value,
            "legal_basis": self.legal_basis.value,
            "is_active": self.is_active,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "parent_consent_id": str(self.parent_consent_id) if self.parent_consent_id else None,
        }
