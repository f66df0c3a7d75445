"""Consent ledger errors."""

from __future__ import annotations

from uuid import UUID

from visitrack.domain.errors.common import NotFoundError
from visitrack.domain.exceptions import VisitrackError


class ConsentRecordNotFoundError(NotFoundError):
    """Raised when a consent record id does not resolve."""

    entity = "consent record"


class ConsentError(VisitrackError):
    """Base class for refused consent ledger mutations."""


class ConsentAlreadyWithdrawnError(ConsentError):
    """Raised when withdrawing a record that is already withdrawn."""

    def __init__(self, record_id: UUID) -> None:
        self.record_id = record_id
        super().__init__(f"Consent record {record_id} is already withdrawn")


class ConsentNotRenewableError(ConsentError):
    """Raised when renewing a record that is inactive or withdrawn."""

    def __init__(self, record_id: UUID, reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Consent record {record_id} cannot be renewed: {reason}")
