"""User directory port.

Resolves staff users (hosts, desk staff, admins) into notification
recipients. User management itself lives outside visitrack.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from visitrack.domain.models.recipient import Recipient, UserRole


class UserDirectoryProtocol(Protocol):
    """Protocol for looking up notification recipients."""

    async def get_user(self, user_id: UUID) -> Recipient | None:
        ...

    async def list_by_roles(self, roles: frozenset[UserRole]) -> list[Recipient]:
        """Active users holding any of `roles`."""
        ...

    async def list_active(self) -> list[Recipient]:
        ...
