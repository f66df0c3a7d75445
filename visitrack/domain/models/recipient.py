"""Staff users who receive notifications (hosts, desk staff, admins)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """Staff roles. Roles imply shared rooms on the real-time channel."""

    ADMIN = "admin"
    RECEPTIONIST = "receptionist"
    SECURITY = "security"
    HOST = "host"
    EMPLOYEE = "employee"


FRONT_DESK_ROOM: str = "front_desk"
ADMIN_ROOM: str = "admin"

# Shared rooms each role joins in addition to its personal and role channels
ROLE_IMPLIED_ROOMS: dict[UserRole, frozenset[str]] = {
    UserRole.ADMIN: frozenset({ADMIN_ROOM}),
    UserRole.RECEPTIONIST: frozenset({FRONT_DESK_ROOM}),
    UserRole.SECURITY: frozenset({FRONT_DESK_ROOM}),
    UserRole.HOST: frozenset(),
    UserRole.EMPLOYEE: frozenset(),
}


def roles_for_room(room: str) -> frozenset[UserRole]:
    """Roles whose members belong to a shared room."""
    return frozenset(role for role, rooms in ROLE_IMPLIED_ROOMS.items() if room in rooms)


@dataclass(frozen=True, eq=True)
class NotificationPreferences:
    """Per-channel opt-ins for offline escalation."""

    push_enabled: bool = True
    email_enabled: bool = True
    sms_enabled: bool = False


@dataclass(frozen=True, eq=True)
class Recipient:
    """A staff user that notifications can be addressed to.

    Attributes:
        user_id: User identifier.
        role: Staff role.
        email: Address for e-mail escalation.
        phone: Number for SMS escalation.
        display_name: Name used in message text.
        is_active: Inactive users receive nothing.
        preferences: Offline channel opt-ins.
    """

    user_id: UUID
    role: UserRole
    email: str | None = field(default=None)
    phone: str | None = field(default=None)
    display_name: str = field(default="")
    is_active: bool = field(default=True)
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)
