"""Audit repository port.

The audit store is append-only. `replace` exists solely so the trail can
store the anonymized form of an entry; `delete` is used only when retention
is configured to delete.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditLogEntry,
    AuditOutcome,
)


class AuditRepositoryProtocol(Protocol):
    """Protocol for audit entry storage.

    Methods:
        append: Store a new entry (raises on storage failure)
        get: Look an entry up by id
        replace: Store the anonymized form of an existing entry
        delete: Remove an entry past retention
        list_retention_expired: Entries whose retention_date < now
        query: Filtered listing, oldest first
    """

    async def append(self, entry: AuditLogEntry) -> None:
        """Append an entry.

        Raises:
            Exception: Any storage failure. The trail wraps it.
        """
        ...

    async def get(self, entry_id: UUID) -> AuditLogEntry | None:
        ...

    async def replace(self, entry: AuditLogEntry) -> None:
        ...

    async def delete(self, entry_id: UUID) -> None:
        ...

    async def list_retention_expired(self, now: datetime) -> list[AuditLogEntry]:
        ...

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
        ...
