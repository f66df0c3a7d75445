"""Audit trail errors.

AuditWriteError is the one fatal class: if the ledger cannot durably record
an action, the action itself is rolled back.
"""

from __future__ import annotations

from visitrack.domain.errors.common import NotFoundError
from visitrack.domain.exceptions import VisitrackError


class AuditWriteError(VisitrackError):
    """Raised when an audit entry could not be stored.

    Attributes:
        action: The action that was being recorded.
    """

    def __init__(self, action: str, cause: str = "") -> None:
        self.action = action
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to record audit entry for {action}{detail}")


class AuditEntryNotFoundError(NotFoundError):
    """Raised when an audit entry id does not resolve."""

    entity = "audit entry"
