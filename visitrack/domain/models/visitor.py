"""Visitor domain model.

Visitors are never hard-deleted before their retention date. Past it, the
sensitive identity fields are withheld whenever the visitor is serialized.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from visitrack.domain.models.consent_record import ConsentType

DEFAULT_VISITOR_RETENTION_DAYS: int = 2555

# Fields withheld once the retention date has passed
SENSITIVE_VISITOR_FIELDS: frozenset[str] = frozenset(
    {"email", "phone", "company", "national_id", "address"}
)


@dataclass(frozen=True, eq=True)
class ConsentSummary:
    """Denormalized consent flags, kept in sync by the consent ledger only.

    Attributes:
        data_processing: Valid data-processing consent on file.
        photo: Valid photo capture consent on file.
        biometric: Valid biometric consent on file.
        marketing: Valid marketing consent on file.
    """

    data_processing: bool = False
    photo: bool = False
    biometric: bool = False
    marketing: bool = False

    @classmethod
    def from_valid_types(cls, valid: set[ConsentType]) -> ConsentSummary:
        return cls(
            data_processing=ConsentType.DATA_PROCESSING in valid,
            photo=ConsentType.PHOTO_CAPTURE in valid,
            biometric=ConsentType.BIOMETRIC_DATA in valid,
            marketing=ConsentType.MARKETING_COMMUNICATIONS in valid,
        )


@dataclass(frozen=True, eq=True)
class Visitor:
    """A third-party visitor.

    Attributes:
        id: Visitor identifier.
        email: Contact e-mail (lower-cased).
        first_name / last_name: Display name.
        phone: Contact phone number.
        company: Organisation the visitor represents.
        national_id: Government identifier, if captured.
        address: Postal address, if captured.
        is_blacklisted: Whether the visitor may enter.
        blacklist_reason: Why the visitor was blacklisted.
        is_recurring: Whether the visitor has a standing arrangement.
        consent: Denormalized consent summary.
        data_retention_date: After this instant sensitive fields are withheld.
        created_at: Registration time.
    """

    id: UUID
    email: str
    first_name: str
    last_name: str
    data_retention_date: datetime
    created_at: datetime
    phone: str | None = field(default=None)
    company: str | None = field(default=None)
    national_id: str | None = field(default=None)
    address: str | None = field(default=None)
    is_blacklisted: bool = field(default=False)
    blacklist_reason: str | None = field(default=None)
    is_recurring: bool = field(default=False)
    consent: ConsentSummary = field(default_factory=ConsentSummary)

    def __post_init__(self) -> None:
        if "@" not in self.email:
            raise ValueError(f"Invalid visitor email: {self.email!r}")

    @classmethod
    def register(
        cls,
        visitor_id: UUID,
        email: str,
        first_name: str,
        last_name: str,
        now: datetime,
        retention_days: int = DEFAULT_VISITOR_RETENTION_DAYS,
        **extra: Any,
    ) -> Visitor:
        """Create a visitor with its retention date computed from `now`."""
        return cls(
            id=visitor_id,
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            created_at=now,
            data_retention_date=now + timedelta(days=retention_days),
            **extra,
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_retention_expired(self, now: datetime) -> bool:
        return self.data_retention_date < now

    def blacklisted(self, reason: str) -> Visitor:
        return replace(self, is_blacklisted=True, blacklist_reason=reason)

    def cleared(self) -> Visitor:
        return replace(self, is_blacklisted=False, blacklist_reason=None)

    def with_consent(self, summary: ConsentSummary) -> Visitor:
        return replace(self, consent=summary)

    def to_public_dict(self, now: datetime) -> dict[str, Any]:
        """Serialize, withholding sensitive fields past the retention date."""
        values: dict[str, Any] = {
            "id": str(self.id),
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "company": self.company,
            "national_id": self.national_id,
            "address": self.address,
            "is_blacklisted": self.is_blacklisted,
            "blacklist_reason": self.blacklist_reason,
            "is_recurring": self.is_recurring,
            "data_processing_consent": self.consent.data_processing,
            "photo_consent": self.consent.photo,
            "biometric_consent": self.consent.biometric,
            "marketing_consent": self.consent.marketing,
            "data_retention_date": self.data_retention_date.isoformat(),
        }
        if self.is_retention_expired(now):
            for key in SENSITIVE_VISITOR_FIELDS:
                values[key] = None
        return values
