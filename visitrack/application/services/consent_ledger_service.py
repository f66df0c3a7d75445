"""Consent ledger service.

Owns every consent record and is the only writer of a visitor's denormalized
consent flags. Mutations for one visitor are serialized; each runs as a unit
of work: store records -> re-sync visitor flags -> record one privacy audit
entry. If the audit write fails, records and visitor are restored and the
AuditWriteError propagates.

Invariant: at most one active record per (visitor_id, consent_type).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from visitrack.application.ports.consent_repository import ConsentRepositoryProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.ports.visitor_repository import VisitorRepositoryProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.base import LoggingMixin
from visitrack.application.services.keyed_locks import KeyedLocks
from visitrack.domain.errors.audit import AuditWriteError
from visitrack.domain.errors.consent import (
    ConsentAlreadyWithdrawnError,
    ConsentNotRenewableError,
    ConsentRecordNotFoundError,
)
from visitrack.domain.errors.visit import VisitorNotFoundError
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditSeverity,
    ConsentChangeDetails,
    RequestContext,
    RiskLevel,
)
from visitrack.domain.models.consent_record import (
    ConsentMethod,
    ConsentRecord,
    ConsentStatus,
    ConsentType,
    LegalBasis,
)
from visitrack.domain.models.visitor import ConsentSummary, Visitor


class ConsentLedgerService(LoggingMixin):
    """Grants, denies, withdraws and renews visitor consent."""

    def __init__(
        self,
        consent_repository: ConsentRepositoryProtocol,
        visitor_repository: VisitorRepositoryProtocol,
        audit_trail: AuditTrailService,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._records = consent_repository
        self._visitors = visitor_repository
        self._audit = audit_trail
        self._time = time_authority
        self._visitor_locks: KeyedLocks[UUID] = KeyedLocks()
        self._init_logger(component="compliance")

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def grant(
        self,
        visitor_id: UUID,
        consent_type: ConsentType,
        text: str,
        method: ConsentMethod,
        legal_basis: LegalBasis,
        purpose: str,
        version: str = "1.0",
        expires_at: datetime | None = None,
        renewal_date: datetime | None = None,
        witnessed_by: UUID | None = None,
        actor_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> ConsentRecord:
        """Record a granted consent, superseding any active record of the type.

        Raises:
            VisitorNotFoundError: Unknown visitor.
            AuditWriteError: Audit failed; nothing was changed.
        """
        return await self._decide(
            ConsentStatus.GRANTED,
            visitor_id,
            consent_type,
            text,
            method,
            legal_basis,
            purpose,
            version=version,
            expires_at=expires_at,
            renewal_date=renewal_date,
            witnessed_by=witnessed_by,
            actor_id=actor_id,
            context=context,
        )

    async def deny(
        self,
        visitor_id: UUID,
        consent_type: ConsentType,
        text: str,
        method: ConsentMethod,
        legal_basis: LegalBasis,
        purpose: str,
        version: str = "1.0",
        witnessed_by: UUID | None = None,
        actor_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> ConsentRecord:
        """Record a denial as the active record of the type."""
        return await self._decide(
            ConsentStatus.DENIED,
            visitor_id,
            consent_type,
            text,
            method,
            legal_basis,
            purpose,
            version=version,
            witnessed_by=witnessed_by,
            actor_id=actor_id,
            context=context,
        )

    async def _decide(
        self,
        status: ConsentStatus,
        visitor_id: UUID,
        consent_type: ConsentType,
        text: str,
        method: ConsentMethod,
        legal_basis: LegalBasis,
        purpose: str,
        *,
        version: str,
        expires_at: datetime | None = None,
        renewal_date: datetime | None = None,
        witnessed_by: UUID | None = None,
        actor_id: UUID | None,
        context: RequestContext | None,
    ) -> ConsentRecord:
        async with self._visitor_locks.hold(visitor_id):
            visitor = await self._require_visitor(visitor_id)
            now = self._time.now()
            record = ConsentRecord(
                id=uuid4(),
                visitor_id=visitor_id,
                consent_type=consent_type,
                status=status,
                version=version,
                text=text,
                method=method,
                legal_basis=legal_basis,
                processing_purpose=purpose,
                created_at=now,
                expires_at=expires_at,
                renewal_date=renewal_date,
                witnessed_by=witnessed_by,
            )
            changes: list[tuple[ConsentRecord | None, ConsentRecord]] = []
            prior = await self._records.get_active(visitor_id, consent_type)
            if prior is not None:
                changes.append((prior, prior.deactivated()))
            changes.append((None, record))

            action = "CONSENT_GRANTED" if status == ConsentStatus.GRANTED else "CONSENT_DENIED"
            await self._commit(
                visitor,
                changes,
                action=action,
                record=record,
                actor_id=actor_id,
                context=context,
            )
            self._log_operation(
                "decide",
                visitor_id=str(visitor_id),
                consent_type=consent_type.value,
            ).info("consent_recorded", status=status.value, record_id=str(record.id))
            return record

    async def withdraw(
        self,
        record_id: UUID,
        reason: str,
        actor_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> ConsentRecord:
        """Withdraw a consent record.

        Raises:
            ConsentRecordNotFoundError: Unknown record.
            ConsentAlreadyWithdrawnError: The record was already withdrawn.
        """
        existing = await self._require_record(record_id)
        async with self._visitor_locks.hold(existing.visitor_id):
            record = await self._require_record(record_id)
            if record.status == ConsentStatus.WITHDRAWN:
                raise ConsentAlreadyWithdrawnError(record_id)

            visitor = await self._require_visitor(record.visitor_id)
            withdrawn = record.withdrawn(self._time.now(), reason)
            await self._commit(
                visitor,
                [(record, withdrawn)],
                action="CONSENT_WITHDRAWN",
                record=withdrawn,
                actor_id=actor_id,
                severity=AuditSeverity.MEDIUM,
                reason=reason,
                context=context,
            )
            self._log_operation("withdraw", record_id=str(record_id)).info(
                "consent_withdrawn",
                consent_type=record.consent_type.value,
            )
            return withdrawn

    async def renew(
        self,
        record_id: UUID,
        new_text: str,
        new_version: str | None = None,
        expires_at: datetime | None = None,
        renewal_date: datetime | None = None,
        actor_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> ConsentRecord:
        """Create a successor record linked through parent_consent_id.

        Raises:
            ConsentRecordNotFoundError: Unknown record.
            ConsentNotRenewableError: The parent is inactive or withdrawn.
        """
        existing = await self._require_record(record_id)
        async with self._visitor_locks.hold(existing.visitor_id):
            parent = await self._require_record(record_id)
            if parent.status == ConsentStatus.WITHDRAWN:
                raise ConsentNotRenewableError(record_id, "record was withdrawn")
            if not parent.is_active:
                raise ConsentNotRenewableError(record_id, "record is no longer active")

            visitor = await self._require_visitor(parent.visitor_id)
            now = self._time.now()
            successor = ConsentRecord(
                id=uuid4(),
                visitor_id=parent.visitor_id,
                consent_type=parent.consent_type,
                status=ConsentStatus.GRANTED,
                version=new_version or parent.version,
                text=new_text,
                method=parent.method,
                legal_basis=parent.legal_basis,
                processing_purpose=parent.processing_purpose,
                created_at=now,
                expires_at=expires_at,
                renewal_date=renewal_date,
                parent_consent_id=parent.id,
                witnessed_by=parent.witnessed_by,
            )
            await self._commit(
                visitor,
                [(parent, parent.deactivated()), (None, successor)],
                action="CONSENT_RENEWED",
                record=successor,
                actor_id=actor_id,
                context=context,
            )
            self._log_operation("renew", record_id=str(record_id)).info(
                "consent_renewed",
                successor_id=str(successor.id),
            )
            return successor

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Deactivate active records whose expiry has passed.

        Returns:
            Number of records deactivated.
        """
        now = now or self._time.now()
        expired = [r for r in await self._records.list_active() if r.is_expired(now)]
        count = 0
        for candidate in expired:
            async with self._visitor_locks.hold(candidate.visitor_id):
                record = await self._records.get(candidate.id)
                if record is None or not record.is_active:
                    continue
                visitor = await self._visitors.get(record.visitor_id)
                if visitor is None:
                    continue
                await self._commit(
                    visitor,
                    [(record, record.deactivated())],
                    action="CONSENT_EXPIRED",
                    record=record.deactivated(),
                    actor_id=None,
                    at=now,
                )
                count += 1
        if count:
            self._log_operation("sweep_expired").info("consent_records_expired", count=count)
        return count

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def is_valid(
        self,
        visitor_id: UUID,
        consent_type: ConsentType,
        at: datetime | None = None,
    ) -> bool:
        """Whether the visitor holds an active, granted, unexpired consent."""
        record = await self._records.get_active(visitor_id, consent_type)
        return record is not None and record.is_valid(at or self._time.now())

    async def history(self, visitor_id: UUID) -> list[ConsentRecord]:
        return await self._records.list_for_visitor(visitor_id)

    async def active_records(self, visitor_id: UUID) -> list[ConsentRecord]:
        return [r for r in await self._records.list_for_visitor(visitor_id) if r.is_active]

    async def needs_renewal(self, record_id: UUID, at: datetime | None = None) -> bool:
        record = await self._require_record(record_id)
        return record.needs_renewal(at or self._time.now())

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    async def _commit(
        self,
        visitor: Visitor,
        changes: list[tuple[ConsentRecord | None, ConsentRecord]],
        *,
        action: str,
        record: ConsentRecord,
        actor_id: UUID | None,
        severity: AuditSeverity = AuditSeverity.LOW,
        reason: str | None = None,
        context: RequestContext | None = None,
        at: datetime | None = None,
    ) -> Visitor:
        for _, new in changes:
            await self._records.save(new)
        synced = await self._sync_visitor(visitor, at or self._time.now())

        try:
            await self._audit.record(
                action,
                AuditCategory.PRIVACY,
                severity=severity,
                risk_level=RiskLevel.MEDIUM,
                actor_id=actor_id,
                visitor_id=visitor.id,
                details=ConsentChangeDetails(
                    consent_type=record.consent_type.value,
                    status=record.status.value,
                    version=record.version,
                    legal_basis=record.legal_basis.value,
                    record_id=str(record.id),
                    parent_consent_id=(
                        str(record.parent_consent_id) if record.parent_consent_id else None
                    ),
                    reason=reason,
                ),
                before={"consent": _summary_dict(visitor.consent)},
                after={"consent": _summary_dict(synced.consent)},
                context=context,
            )
        except AuditWriteError:
            for old, new in changes:
                if old is None:
                    await self._records.remove(new.id)
                else:
                    await self._records.save(old)
            await self._visitors.save(visitor)
            self._log_operation("commit", action=action, visitor_id=str(visitor.id)).warning(
                "consent_change_rolled_back"
            )
            raise
        return synced

    async def _sync_visitor(self, visitor: Visitor, at: datetime) -> Visitor:
        active = await self.active_records(visitor.id)
        valid = {r.consent_type for r in active if r.is_valid(at)}
        synced = visitor.with_consent(ConsentSummary.from_valid_types(valid))
        if synced != visitor:
            await self._visitors.save(synced)
        return synced

    async def _require_visitor(self, visitor_id: UUID) -> Visitor:
        visitor = await self._visitors.get(visitor_id)
        if visitor is None:
            raise VisitorNotFoundError(visitor_id)
        return visitor

    async def _require_record(self, record_id: UUID) -> ConsentRecord:
        record = await self._records.get(record_id)
        if record is None:
            raise ConsentRecordNotFoundError(record_id)
        return record


def _summary_dict(summary: ConsentSummary) -> dict[str, bool]:
    return {
        "data_processing": summary.data_processing,
        "photo": summary.photo,
        "biometric": summary.biometric,
        "marketing": summary.marketing,
    }
