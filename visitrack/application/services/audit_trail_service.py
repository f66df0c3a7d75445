"""Audit trail service.

Append-only compliance ledger. Every committed visit transition, every policy
refusal, every consent mutation and every notification dispatch produces
exactly one entry here.

Retention:
    Each entry carries its own retention_date, computed at write time from
    the category's configured retention. Past it, the retention sweep either
    anonymizes the entry (default) or deletes it (RETENTION_ACTION=delete).
    Anonymization is irreversible and idempotent, and is itself logged only
    to the operational log, never to the audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from uuid6 import uuid7

from visitrack.application.ports.audit_repository import AuditRepositoryProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.services.base import LoggingMixin
from visitrack.config.visitrack_config import RetentionAction, VisitrackConfig
from visitrack.domain.errors.audit import AuditEntryNotFoundError, AuditWriteError
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditDetails,
    AuditLogEntry,
    AuditOutcome,
    AuditSeverity,
    RequestContext,
    RiskLevel,
)
from visitrack.infrastructure.monitoring.metrics import get_metrics_collector


@dataclass(frozen=True)
class RetentionSweepResult:
    """Outcome of one retention sweep.

    Attributes:
        anonymized: Entries anonymized in this run.
        deleted: Entries deleted in this run.
        skipped: Expired entries that were already anonymized.
    """

    anonymized: int = 0
    deleted: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.anonymized + self.deleted


class AuditTrailService(LoggingMixin):
    """Records, anonymizes and queries audit entries."""

    def __init__(
        self,
        repository: AuditRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        config: VisitrackConfig | None = None,
    ) -> None:
        self._repository = repository
        self._time = time_authority
        self._config = config or VisitrackConfig()
        self._init_logger(component="compliance")

    def retention_date_for(self, category: AuditCategory, created_at: datetime) -> datetime:
        return created_at + timedelta(days=self._config.audit_retention_days_for(category))

    async def record(
        self,
        action: str,
        category: AuditCategory,
        *,
        outcome: AuditOutcome = AuditOutcome.SUCCESS,
        severity: AuditSeverity = AuditSeverity.LOW,
        risk_level: RiskLevel = RiskLevel.LOW,
        actor_id: UUID | None = None,
        visitor_id: UUID | None = None,
        visit_id: UUID | None = None,
        details: AuditDetails | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        context: RequestContext | None = None,
    ) -> AuditLogEntry:
        """Append one entry to the trail.

        Args:
            action: Upper-snake action name.
            category: Audit category; selects the retention period.
            outcome: success, failure, error or warning.
            severity: Operational severity.
            risk_level: Compliance risk rating.
            actor_id: Acting user; None for system actions.
            visitor_id: Visitor the action concerns.
            visit_id: Visit the action concerns.
            details: Closed details variant.
            before: Snapshot before a modification.
            after: Snapshot after a modification.
            context: Request metadata.

        Returns:
            The stored entry.

        Raises:
            AuditWriteError: The entry could not be stored. Callers roll back.
        """
        now = self._time.now()
        ctx = context or RequestContext()
        entry = AuditLogEntry(
            id=uuid7(),
            action=action,
            category=category,
            severity=severity,
            outcome=outcome,
            risk_level=risk_level,
            created_at=now,
            retention_date=self.retention_date_for(category, now),
            actor_id=actor_id,
            visitor_id=visitor_id,
            visit_id=visit_id,
            details=details,
            before=before,
            after=after,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
            session_id=ctx.session_id,
            request_id=ctx.request_id,
        )

        try:
            await self._repository.append(entry)
        except Exception as exc:
            log = self._log_operation("record", action=action, category=category.value)
            log.error("audit_write_failed", error=str(exc))
            raise AuditWriteError(action, str(exc)) from exc

        get_metrics_collector().increment_audit_entries(category.value, outcome.value)
        return entry

    async def anonymize(self, entry_id: UUID) -> AuditLogEntry:
        """Irreversibly redact one entry.

        Nulls the request context, strips PII keys from details and
        snapshots and masks operator free text. Statistical fields are kept.
        Idempotent.

        Raises:
            AuditEntryNotFoundError: Unknown entry.
        """
        entry = await self._repository.get(entry_id)
        if entry is None:
            raise AuditEntryNotFoundError(entry_id)
        if entry.is_anonymized:
            return entry

        redacted = entry.anonymized(self._time.now())
        await self._repository.replace(redacted)
        self._log_operation("anonymize", entry_id=str(entry_id)).info(
            "audit_entry_anonymized",
            action=entry.action,
            category=entry.category.value,
        )
        return redacted

    async def sweep_retention(self, now: datetime | None = None) -> RetentionSweepResult:
        """Process entries whose retention date has passed.

        Re-running over the same instant changes nothing: anonymized entries
        are skipped and deleted entries are gone.
        """
        now = now or self._time.now()
        log = self._log_operation(
            "sweep_retention",
            action=self._config.retention_action.value,
        )
        expired = await self._repository.list_retention_expired(now)

        anonymized = deleted = skipped = 0
        for entry in expired:
            if self._config.retention_action == RetentionAction.DELETE:
                await self._repository.delete(entry.id)
                deleted += 1
            elif entry.is_anonymized:
                skipped += 1
            else:
                await self.anonymize(entry.id)
                anonymized += 1

        result = RetentionSweepResult(anonymized=anonymized, deleted=deleted, skipped=skipped)
        if result.processed:
            log.info(
                "retention_sweep_completed",
                anonymized=anonymized,
                deleted=deleted,
                skipped=skipped,
            )
        return result

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get(self, entry_id: UUID) -> AuditLogEntry:
        entry = await self._repository.get(entry_id)
        if entry is None:
            raise AuditEntryNotFoundError(entry_id)
        return entry

    async def entries_for_visit(self, visit_id: UUID) -> list[AuditLogEntry]:
        return await self._repository.query(visit_id=visit_id)

    async def entries_for_visitor(self, visitor_id: UUID) -> list[AuditLogEntry]:
        return await self._repository.query(visitor_id=visitor_id)

    async def query(
        self,
        *,
        category: AuditCategory | None = None,
        outcome: AuditOutcome | None = None,
        action: str | None = None,
        limit: int | None = None,
    ) -> list[AuditLogEntry]:
        return await self._repository.query(
            category=category, outcome=outcome, action=action, limit=limit
        )
