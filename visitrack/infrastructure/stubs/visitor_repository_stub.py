"""In-memory visitor repository stub."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from visitrack.application.ports.visitor_repository import VisitorRepositoryProtocol
from visitrack.domain.models.visitor import Visitor

logger = logging.getLogger(__name__)


class VisitorRepositoryStub(VisitorRepositoryProtocol):
    """In-memory visitor storage.

    Attributes:
        _visitors: Map of visitor id to Visitor.
        _lock: Async lock for consistent reads and writes.
    """

    def __init__(self) -> None:
        self._visitors: dict[UUID, Visitor] = {}
        self._lock = asyncio.Lock()

    async def save(self, visitor: Visitor) -> None:
        async with self._lock:
            self._visitors[visitor.id] = visitor
            logger.debug("Saved visitor %s", visitor.id)

    async def get(self, visitor_id: UUID) -> Visitor | None:
        async with self._lock:
            return self._visitors.get(visitor_id)

    # Test helpers

    def add(self, visitor: Visitor) -> None:
        self._visitors[visitor.id] = visitor

    def clear(self) -> None:
        self._visitors.clear()
