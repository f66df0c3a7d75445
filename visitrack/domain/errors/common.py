"""Error categories shared by every visitrack component.

The categories drive how callers react:

- ValidationError: malformed input, rejected before the state machine
- NotFoundError: referenced entity does not exist
- StateConflictError: expected, user-facing; never logged as a system error
- PolicyViolationError: security/compliance relevant; always audited
"""

from __future__ import annotations

from uuid import UUID

from visitrack.domain.exceptions import VisitrackError


class VisitValidationError(VisitrackError, ValueError):
    """Raised when input is malformed and never reaches the state machine.

    Attributes:
        field: Name of the offending field, when known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class NotFoundError(VisitrackError):
    """Base class for lookups that found nothing.

    Attributes:
        entity: Entity kind, e.g. "visit".
        entity_id: Identifier that was looked up.
    """

    entity: str = "entity"

    def __init__(self, entity_id: UUID | str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} {entity_id} not found")


class StateConflictError(VisitrackError):
    """Base class for transitions that conflict with the current state."""


class PolicyViolationError(VisitrackError):
    """Base class for security and privacy policy refusals."""
