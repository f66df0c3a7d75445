"""Consent record repository port.

Records are never deleted. The ledger service keeps at most one active record
per (visitor, consent type); the repository only stores what it is given.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from visitrack.domain.models.consent_record import ConsentRecord, ConsentType


class ConsentRepositoryProtocol(Protocol):
    """Protocol for consent record storage.

    Methods:
        save: Insert or replace a record
        get: Look a record up by id
        get_active: The active record of a type for a visitor
        list_for_visitor: Full history, oldest first
        list_active: Every active record
        remove: Undo an uncommitted insert
    """

    async def save(self, record: ConsentRecord) -> None:
        ...

    async def get(self, record_id: UUID) -> ConsentRecord | None:
        ...

    async def get_active(
        self, visitor_id: UUID, consent_type: ConsentType
    ) -> ConsentRecord | None:
        ...

    async def list_for_visitor(self, visitor_id: UUID) -> list[ConsentRecord]:
        ...

    async def list_active(self) -> list[ConsentRecord]:
        ...

    async def remove(self, record_id: UUID) -> None:
        """Remove a record written in a unit of work that was rolled back."""
        ...
