"""In-memory user directory stub."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

from visitrack.application.ports.user_directory import UserDirectoryProtocol
from visitrack.domain.models.recipient import NotificationPreferences, Recipient, UserRole

logger = logging.getLogger(__name__)


class UserDirectoryStub(UserDirectoryProtocol):
    """Fixed set of recipients, registered by tests or bootstrap.

    Attributes:
        _users: Map of user id to Recipient.
    """

    def __init__(self, users: list[Recipient] | None = None) -> None:
        self._users: dict[UUID, Recipient] = {u.user_id: u for u in users or []}

    async def get_user(self, user_id: UUID) -> Recipient | None:
        return self._users.get(user_id)

    async def list_by_roles(self, roles: frozenset[UserRole]) -> list[Recipient]:
        return [u for u in self._users.values() if u.role in roles and u.is_active]

    async def list_active(self) -> list[Recipient]:
        return [u for u in self._users.values() if u.is_active]

    # Test helpers

    def add(self, recipient: Recipient) -> Recipient:
        self._users[recipient.user_id] = recipient
        logger.debug("Registered user %s as %s", recipient.user_id, recipient.role.value)
        return recipient

    def add_user(
        self,
        role: UserRole,
        email: str | None = None,
        phone: str | None = None,
        preferences: NotificationPreferences | None = None,
        display_name: str = "",
    ) -> Recipient:
        """Create and register a recipient with a fresh id."""
        return self.add(
            Recipient(
                user_id=uuid4(),
                role=role,
                email=email,
                phone=phone,
                display_name=display_name,
                preferences=preferences or NotificationPreferences(),
            )
        )
