"""Emergency declaration errors."""

from __future__ import annotations

from uuid import UUID

from visitrack.domain.exceptions import VisitrackError


class EmergencyNotAuthorizedError(VisitrackError):
    """Raised when a role that may not declare emergencies tries to."""

    def __init__(self, user_id: UUID, role: str) -> None:
        self.user_id = user_id
        self.role = role
        super().__init__(f"User {user_id} with role '{role}' cannot declare emergencies")
