"""In-memory audit repository stub.

Supports failure injection so tests can exercise the rollback path of
every unit of work.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from uuid import UUID

from visitrack.application.ports.audit_repository import AuditRepositoryProtocol
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditLogEntry,
    AuditOutcome,
)

logger = logging.getLogger(__name__)


class AuditStorageUnavailableError(Exception):
    """Injected storage failure."""


class AuditRepositoryStub(AuditRepositoryProtocol):
    """In-memory, append-ordered audit storage.

    Attributes:
        _entries: Map of entry id to entry, in append order.
        _fail_appends: Remaining appends that should fail.
        _lock: Async lock for consistent reads and writes.
    """

    def __init__(self) -> None:
        self._entries: dict[UUID, AuditLogEntry] = {}
        self._fail_appends = 0
        self._lock = asyncio.Lock()

    async def append(self, entry: AuditLogEntry) -> None:
        async with self._lock:
            if self._fail_appends:
                self._fail_appends -= 1
                raise AuditStorageUnavailableError("audit storage unavailable")
            if entry.id in self._entries:
                raise ValueError(f"Audit entry {entry.id} already exists")
            self._entries[entry.id] = entry
            logger.debug("Appended audit entry %s: %s", entry.id, entry.action)

    async def get(self, entry_id: UUID) -> AuditLogEntry | None:
        async with self._lock:
            return self._entries.get(entry_id)

    async def replace(self, entry: AuditLogEntry) -> None:
        async with self._lock:
            if entry.id not in self._entries:
                raise KeyError(entry.id)
            self._entries[entry.id] = entry

    async def delete(self, entry_id: UUID) -> None:
        async with self._lock:
            self._entries.pop(entry_id, None)

    async def list_retention_expired(self, now: datetime) -> list[AuditLogEntry]:
        async with self._lock:
            return [e for e in self._entries.values() if e.is_retention_expired(now)]

    async def query(
        self,
        *,
        visit_id: UUID | None = None,
        visitor_id: UUID | None = None,
        category: AuditCategory | None = None,
        outcome: AuditOutcome | None = None,
        action: str | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        async with self._lock:
            results = [
                e
                for e in self._entries.values()
                if (visit_id is None or e.visit_id == visit_id)
                and (visitor_id is None or e.visitor_id == visitor_id)
                and (category is None or e.category == category)
                and (outcome is None or e.outcome == outcome)
                and (action is None or e.action == action)
            ]
            return results[:limit] if limit is not None else results

    # Test helpers

    def fail_next_appends(self, count: int = 1) -> None:
        """Make the next `count` appends raise."""
        self._fail_appends = count

    @property
    def entries(self) -> list[AuditLogEntry]:
        return list(self._entries.values())

    def actions(self) -> list[str]:
        return [e.action for e in self._entries.values()]

    def clear(self) -> None:
        self._entries.clear()
        self._fail_appends = 0
