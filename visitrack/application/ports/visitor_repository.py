"""Visitor repository port."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from visitrack.domain.models.visitor import Visitor


class VisitorRepositoryProtocol(Protocol):
    """Protocol for visitor storage."""

    async def save(self, visitor: Visitor) -> None:
        ...

    async def get(self, visitor_id: UUID) -> Visitor | None:
        ...
