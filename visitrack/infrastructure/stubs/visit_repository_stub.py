"""In-memory visit repository stub.

Development and test implementation of VisitRepositoryProtocol. No
persistence across restarts.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from visitrack.application.ports.visit_repository import VisitRepositoryProtocol
from visitrack.domain.models.visit import NotificationLogEntry, Visit, VisitStatus

logger = logging.getLogger(__name__)


class VisitRepositoryStub(VisitRepositoryProtocol):
    """In-memory visit storage guarded by an asyncio Lock.

    Attributes:
        _visits: Map of visit id to Visit.
        _lock: Async lock for consistent reads and writes.
    """

    def __init__(self) -> None:
        self._visits: dict[UUID, Visit] = {}
        self._lock = asyncio.Lock()

    async def save(self, visit: Visit) -> None:
        async with self._lock:
            self._visits[visit.id] = visit
            logger.debug("Saved visit %s: status=%s", visit.id, visit.status.value)

    async def get(self, visit_id: UUID) -> Visit | None:
        async with self._lock:
            return self._visits.get(visit_id)

    async def find_by_token(self, qr_token: str) -> Visit | None:
        async with self._lock:
            return next((v for v in self._visits.values() if v.qr_token == qr_token), None)

    async def find_active_for_visitor(self, visitor_id: UUID) -> Visit | None:
        async with self._lock:
            return next(
                (
                    v
                    for v in self._visits.values()
                    if v.visitor_id == visitor_id and v.status == VisitStatus.CHECKED_IN
                ),
                None,
            )

    async def list_by_status(self, status: VisitStatus) -> list[Visit]:
        async with self._lock:
            return [v for v in self._visits.values() if v.status == status]

    async def list_all(self) -> list[Visit]:
        async with self._lock:
            return list(self._visits.values())

    async def append_notifications(
        self, visit_id: UUID, entries: tuple[NotificationLogEntry, ...]
    ) -> Visit | None:
        async with self._lock:
            visit = self._visits.get(visit_id)
            if visit is None:
                logger.warning("Notification log append for unknown visit %s", visit_id)
                return None
            updated = visit.with_notifications(entries)
            self._visits[visit_id] = updated
            return updated

    async def remove(self, visit_id: UUID) -> None:
        async with self._lock:
            self._visits.pop(visit_id, None)

    # Test helpers

    def add(self, visit: Visit) -> None:
        """Seed a visit synchronously."""
        self._visits[visit.id] = visit

    def count(self) -> int:
        return len(self._visits)

    def clear(self) -> None:
        self._visits.clear()
