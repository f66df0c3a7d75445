"""Visit repository port.

Repositories store and fail loudly; lifecycle rules, audit and locking
belong to the registry service.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from visitrack.domain.models.visit import NotificationLogEntry, Visit, VisitStatus


class VisitRepositoryProtocol(Protocol):
    """Protocol for visit storage.

    Methods:
        save: Insert or replace a visit
        get: Look a visit up by id
        find_by_token: Look a visit up by its QR token
        find_active_for_visitor: The visitor's checked-in visit, if any
        list_by_status: All visits in a status
        list_all: Every visit
        append_notifications: Append to a visit's notification log
        remove: Undo an uncommitted insert
    """

    async def save(self, visit: Visit) -> None:
        """Insert or replace a visit.

        Args:
            visit: The visit to store.
        """
        ...

    async def get(self, visit_id: UUID) -> Visit | None:
        ...

    async def find_by_token(self, qr_token: str) -> Visit | None:
        ...

    async def find_active_for_visitor(self, visitor_id: UUID) -> Visit | None:
        """Return the visitor's checked-in visit, or None."""
        ...

    async def list_by_status(self, status: VisitStatus) -> list[Visit]:
        ...

    async def list_all(self) -> list[Visit]:
        ...

    async def append_notifications(
        self, visit_id: UUID, entries: tuple[NotificationLogEntry, ...]
    ) -> Visit | None:
        """Append entries to a visit's notification log.

        Allowed on terminal visits.

        Returns:
            The updated visit, or None if the visit does not exist.
        """
        ...

    async def remove(self, visit_id: UUID) -> None:
        """Remove a visit created in a unit of work that was rolled back."""
        ...
