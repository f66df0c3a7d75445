"""In-memory consent record repository stub."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from visitrack.application.ports.consent_repository import ConsentRepositoryProtocol
from visitrack.domain.models.consent_record import ConsentRecord, ConsentType

logger = logging.getLogger(__name__)


class ConsentRepositoryStub(ConsentRepositoryProtocol):
    """In-memory consent storage keeping insertion order.

    Attributes:
        _records: Map of record id to ConsentRecord.
        _lock: Async lock for consistent reads and writes.
    """

    def __init__(self) -> None:
        self._records: dict[UUID, ConsentRecord] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: ConsentRecord) -> None:
        async with self._lock:
            self._records[record.id] = record
            logger.debug(
                "Saved consent record %s: type=%s status=%s active=%s",
                record.id,
                record.consent_type.value,
                record.status.value,
                record.is_active,
            )

    async def get(self, record_id: UUID) -> ConsentRecord | None:
        async with self._lock:
            return self._records.get(record_id)

    async def get_active(
        self, visitor_id: UUID, consent_type: ConsentType
    ) -> ConsentRecord | None:
        async with self._lock:
            return next(
                (
                    r
                    for r in self._records.values()
                    if r.visitor_id == visitor_id
                    and r.consent_type == consent_type
                    and r.is_active
                ),
                None,
            )

    async def list_for_visitor(self, visitor_id: UUID) -> list[ConsentRecord]:
        async with self._lock:
            return [r for r in self._records.values() if r.visitor_id == visitor_id]

    async def list_active(self) -> list[ConsentRecord]:
        async with self._lock:
            return [r for r in self._records.values() if r.is_active]

    async def remove(self, record_id: UUID) -> None:
        async with self._lock:
            self._records.pop(record_id, None)

    # Test helpers

    def active_count(self, visitor_id: UUID, consent_type: ConsentType) -> int:
        return sum(
            1
            for r in self._records.values()
            if r.visitor_id == visitor_id and r.consent_type == consent_type and r.is_active
        )

    def clear(self) -> None:
        self._records.clear()
