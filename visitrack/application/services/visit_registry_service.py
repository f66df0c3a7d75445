"""Visit registry service.

Owns the visit lifecycle state machine. Every mutation of a visit is
serialized by a per-visit lock; check-in also takes a per-visitor lock
(always visitor first, then visit) so one visitor cannot be checked in on
two visits at once. Locks live only while held or awaited.

Unit of work for a transition:
    1. persist the new visit
    2. record exactly one audit entry; on AuditWriteError restore the
       previous visit and re-raise
    3. apply the transition to the occupancy tracker
    4. publish the domain event to the outbox

State conflicts write no audit entry. Policy refusals write exactly one
failure entry before the error is raised.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from visitrack.application.ports.event_publisher import EventPublisherProtocol
from visitrack.application.ports.time_authority import TimeAuthorityProtocol
from visitrack.application.ports.user_directory import UserDirectoryProtocol
from visitrack.application.ports.visit_repository import VisitRepositoryProtocol
from visitrack.application.ports.visitor_repository import VisitorRepositoryProtocol
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.application.services.base import LoggingMixin
from visitrack.application.services.keyed_locks import KeyedLocks
from visitrack.application.services.consent_ledger_service import ConsentLedgerService
from visitrack.application.services.occupancy_tracker import OccupancyTracker
from visitrack.config.visitrack_config import VisitrackConfig
from visitrack.domain.errors.audit import AuditWriteError
from visitrack.domain.errors.common import VisitValidationError
from visitrack.domain.errors.visit import (
    AlreadyCheckedInError,
    ConsentMissingError,
    HostNotFoundError,
    InvalidTokenError,
    NotCheckedInError,
    TokenExpiredError,
    VisitActiveError,
    VisitCompletedError,
    VisitNotFoundError,
    VisitorAlreadyOnSiteError,
    VisitorBlacklistedError,
    VisitorNotFoundError,
)
from visitrack.domain.events import OutboxEvent
from visitrack.domain.events.visit import (
    VisitClosedEvent,
    VisitOverdueEvent,
    VisitorArrivedEvent,
    VisitorDepartedEvent,
)
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditOutcome,
    AuditSeverity,
    PolicyViolationDetails,
    RequestContext,
    RiskLevel,
    VisitTransitionDetails,
)
from visitrack.domain.models.consent_record import ConsentType
from visitrack.domain.models.visit import (
    EvacuationDetails,
    Visit,
    VisitStatus,
    VisitTransition,
)
from visitrack.domain.models.visitor import Visitor

# Statuses check-in refuses as completed; EXPIRED is reported as a token error
_COMPLETED_FOR_CHECK_IN: frozenset[VisitStatus] = frozenset(
    {VisitStatus.CHECKED_OUT, VisitStatus.CANCELLED, VisitStatus.NO_SHOW}
)


@dataclass(frozen=True)
class PreRegistration:
    """Result of a successful pre-registration.

    Attributes:
        visit: The stored visit.
        qr_token: Opaque token to present at the gate.
        qr_token_expires_at: When the token stops being accepted.
    """

    visit: Visit
    qr_token: str
    qr_token_expires_at: datetime


class VisitRegistryService(LoggingMixin):
    """Applies visit lifecycle transitions."""

    def __init__(
        self,
        visit_repository: VisitRepositoryProtocol,
        visitor_repository: VisitorRepositoryProtocol,
        user_directory: UserDirectoryProtocol,
        consent_ledger: ConsentLedgerService,
        audit_trail: AuditTrailService,
        occupancy: OccupancyTracker,
        publisher: EventPublisherProtocol,
        time_authority: TimeAuthorityProtocol,
        config: VisitrackConfig | None = None,
    ) -> None:
        self._visits = visit_repository
        self._visitors = visitor_repository
        self._directory = user_directory
        self._consent = consent_ledger
        self._audit = audit_trail
        self._occupancy = occupancy
        self._publisher = publisher
        self._time = time_authority
        self._config = config or VisitrackConfig()
        self._visit_locks: KeyedLocks[UUID] = KeyedLocks()
        self._visitor_locks: KeyedLocks[UUID] = KeyedLocks()
        self._init_logger(component="visits")

    # -------------------------------------------------------------------------
    # Pre-registration
    # -------------------------------------------------------------------------

    async def pre_register(
        self,
        visitor_id: UUID,
        host_id: UUID,
        purpose: str,
        scheduled_arrival: datetime | None = None,
        expected_duration: int | None = None,
        operator_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> PreRegistration:
        """Create a pre-registered visit and its QR token.

        Raises:
            VisitValidationError: Empty purpose or non-positive duration.
            VisitorNotFoundError: Unknown visitor.
            HostNotFoundError: Unknown or inactive host.
            VisitorBlacklistedError: Visitor may not enter (audited).
            ConsentMissingError: No valid data-processing consent (audited).
        """
        if not purpose or not purpose.strip():
            raise VisitValidationError("Visit purpose cannot be empty", field="purpose")
        if expected_duration is not None and expected_duration <= 0:
            raise VisitValidationError(
                "Expected duration must be a positive number of minutes",
                field="expected_duration",
            )

        log = self._log_operation(
            "pre_register", visitor_id=str(visitor_id), host_id=str(host_id)
        )
        visitor = await self._require_visitor(visitor_id)
        host = await self._directory.get_user(host_id)
        if host is None or not host.is_active:
            raise HostNotFoundError(host_id)

        if visitor.is_blacklisted:
            await self._record_policy_violation(
                "PRE_REGISTRATION_BLOCKED",
                AuditCategory.SECURITY,
                policy="blacklist",
                reason=visitor.blacklist_reason or "visitor is blacklisted",
                attempted_action="pre_register",
                actor_id=operator_id,
                visitor_id=visitor_id,
                context=context,
            )
            log.info("pre_registration_blocked", reason="blacklisted")
            raise VisitorBlacklistedError(visitor_id, visitor.blacklist_reason)

        if not await self._consent.is_valid(visitor_id, ConsentType.DATA_PROCESSING):
            await self._record_policy_violation(
                "PRE_REGISTRATION_CONSENT_MISSING",
                AuditCategory.PRIVACY,
                policy="data_processing_consent",
                reason="no valid data processing consent",
                attempted_action="pre_register",
                actor_id=operator_id,
                visitor_id=visitor_id,
                context=context,
            )
            log.info("pre_registration_blocked", reason="consent_missing")
            raise ConsentMissingError(visitor_id, ConsentType.DATA_PROCESSING.value)

        now = self._time.now()
        visit = Visit(
            id=uuid4(),
            visitor_id=visitor_id,
            host_id=host_id,
            purpose=purpose.strip(),
            pre_registered_at=now,
            qr_token=secrets.token_urlsafe(32),
            qr_token_expires_at=now + timedelta(hours=self._config.qr_ttl_hours),
            scheduled_arrival=scheduled_arrival,
            expected_duration=expected_duration,
        )
        async with self._visit_locks.hold(visit.id):
            await self._commit(
                None,
                visit,
                "VISIT_PRE_REGISTERED",
                actor_id=operator_id,
                context=context,
            )

        log.info("visit_pre_registered", visit_id=str(visit.id))
        return PreRegistration(
            visit=visit,
            qr_token=visit.qr_token,
            qr_token_expires_at=visit.qr_token_expires_at,
        )

    # -------------------------------------------------------------------------
    # Check-in / check-out
    # -------------------------------------------------------------------------

    async def check_in(
        self,
        visit_id: UUID,
        operator_id: UUID,
        context: RequestContext | None = None,
    ) -> Visit:
        """Check a visitor in at the gate.

        Failures, in order of precedence: VisitNotFoundError,
        AlreadyCheckedInError, VisitCompletedError, VisitorBlacklistedError,
        TokenExpiredError, VisitorAlreadyOnSiteError.
        """
        visit = await self._require_visit(visit_id)
        async with self._visitor_locks.hold(visit.visitor_id), self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            log = self._log_operation(
                "check_in", visit_id=str(visit_id), visitor_id=str(visit.visitor_id)
            )

            if visit.status == VisitStatus.CHECKED_IN:
                raise AlreadyCheckedInError(visit_id)
            if visit.status in _COMPLETED_FOR_CHECK_IN:
                raise VisitCompletedError(visit_id, visit.status)

            visitor = await self._require_visitor(visit.visitor_id)
            if visitor.is_blacklisted:
                await self._record_policy_violation(
                    "CHECK_IN_BLOCKED",
                    AuditCategory.SECURITY,
                    policy="blacklist",
                    reason=visitor.blacklist_reason or "visitor is blacklisted",
                    attempted_action="check_in",
                    actor_id=operator_id,
                    visitor_id=visitor.id,
                    visit_id=visit_id,
                    context=context,
                )
                log.info("check_in_blocked", reason="blacklisted")
                raise VisitorBlacklistedError(visitor.id, visitor.blacklist_reason)

            now = self._time.now()
            if visit.status == VisitStatus.EXPIRED or visit.is_token_expired(now):
                await self._record_policy_violation(
                    "CHECK_IN_TOKEN_EXPIRED",
                    AuditCategory.SECURITY,
                    policy="qr_token_ttl",
                    reason="QR token expired",
                    attempted_action="check_in",
                    actor_id=operator_id,
                    visitor_id=visitor.id,
                    visit_id=visit_id,
                    context=context,
                    severity=AuditSeverity.LOW,
                    risk_level=RiskLevel.LOW,
                )
                log.info("check_in_blocked", reason="token_expired")
                raise TokenExpiredError(visit_id, visit.qr_token_expires_at)

            active = await self._visits.find_active_for_visitor(visit.visitor_id)
            if active is not None and active.id != visit_id:
                raise VisitorAlreadyOnSiteError(visit.visitor_id, active.id)

            checked_in = visit.checked_in(now, operator_id)
            await self._commit(
                visit,
                checked_in,
                "VISITOR_CHECKED_IN",
                actor_id=operator_id,
                context=context,
                event=VisitorArrivedEvent(
                    visit_id=visit_id,
                    visitor_id=visitor.id,
                    host_id=visit.host_id,
                    visitor_name=visitor.full_name,
                    purpose=visit.purpose,
                    checked_in_at=now,
                    expected_checkout=checked_in.expected_checkout,
                ),
            )
            log.info("visitor_checked_in", occupancy=self._occupancy.current())
            return checked_in

    async def check_in_by_token(
        self,
        qr_token: str,
        operator_id: UUID,
        context: RequestContext | None = None,
    ) -> Visit:
        """Resolve a presented QR token and check its visit in.

        Raises:
            InvalidTokenError: The token does not belong to any visit (audited).
        """
        visit = await self._visits.find_by_token(qr_token)
        if visit is None:
            await self._record_policy_violation(
                "INVALID_QR_TOKEN",
                AuditCategory.SECURITY,
                policy="qr_token",
                reason="token not recognised",
                attempted_action="check_in",
                actor_id=operator_id,
                context=context,
            )
            raise InvalidTokenError()
        return await self.check_in(visit.id, operator_id, context=context)

    async def check_out(
        self,
        visit_id: UUID,
        operator_id: UUID,
        rating: int | None = None,
        feedback: str | None = None,
        context: RequestContext | None = None,
    ) -> Visit:
        """Check a visitor out and record the actual duration.

        Raises:
            VisitValidationError: Rating outside 1..5.
            VisitNotFoundError: Unknown visit.
            NotCheckedInError: The visit is not checked in.
        """
        _validate_rating(rating)
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.status != VisitStatus.CHECKED_IN:
                raise NotCheckedInError(visit_id, visit.status)

            now = self._time.now()
            checked_out = visit.checked_out(now, operator_id, rating=rating, feedback=feedback)
            visitor = await self._visitors.get(visit.visitor_id)
            assert checked_out.actual_duration is not None
            await self._commit(
                visit,
                checked_out,
                "VISITOR_CHECKED_OUT",
                actor_id=operator_id,
                context=context,
                event=VisitorDepartedEvent(
                    visit_id=visit_id,
                    visitor_id=visit.visitor_id,
                    host_id=visit.host_id,
                    visitor_name=visitor.full_name if visitor else "Visitor",
                    checked_out_at=now,
                    actual_duration=checked_out.actual_duration,
                ),
            )
            self._log_operation("check_out", visit_id=str(visit_id)).info(
                "visitor_checked_out",
                duration=checked_out.actual_duration,
                occupancy=self._occupancy.current(),
            )
            return checked_out

    # -------------------------------------------------------------------------
    # Other transitions
    # -------------------------------------------------------------------------

    async def cancel(
        self,
        visit_id: UUID,
        reason: str,
        operator_id: UUID | None = None,
        context: RequestContext | None = None,
    ) -> Visit:
        """Cancel a pre-registered visit.

        Raises:
            VisitActiveError: The visitor is on site.
            VisitCompletedError: The visit is already terminal.
        """
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.status == VisitStatus.CHECKED_IN:
                raise VisitActiveError(visit_id)
            if visit.is_terminal:
                raise VisitCompletedError(visit_id, visit.status)

            now = self._time.now()
            cancelled = visit.cancelled(now, reason)
            await self._commit(
                visit,
                cancelled,
                "VISIT_CANCELLED",
                actor_id=operator_id,
                reason=reason,
                context=context,
                event=VisitClosedEvent(
                    visit_id=visit_id,
                    visitor_id=visit.visitor_id,
                    host_id=visit.host_id,
                    status=VisitStatus.CANCELLED.value,
                    closed_at=now,
                    reason=reason,
                ),
            )
            self._log_operation("cancel", visit_id=str(visit_id)).info("visit_cancelled")
            return cancelled

    async def mark_evacuated(self, visit_id: UUID, details: EvacuationDetails) -> Visit:
        """Flag an on-site visitor as accounted for. Status is unchanged.

        Raises:
            NotCheckedInError: The visit is not checked in.
        """
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.status != VisitStatus.CHECKED_IN:
                raise NotCheckedInError(visit_id, visit.status)

            evacuated = visit.with_evacuation(details, self._time.now())
            await self._commit(
                visit,
                evacuated,
                "VISITOR_EVACUATED",
                category=AuditCategory.SECURITY,
                severity=AuditSeverity.HIGH,
                risk_level=RiskLevel.MEDIUM,
                actor_id=details.marked_by,
                reason=details.assembly_point,
            )
            self._log_operation("mark_evacuated", visit_id=str(visit_id)).info(
                "visitor_marked_evacuated",
                assembly_point=details.assembly_point,
            )
            return evacuated

    async def mark_no_show(self, visit_id: UUID, operator_id: UUID | None = None) -> Visit:
        """Mark a pre-registered visit as a no-show.

        Raises:
            VisitActiveError: The visitor is on site.
            VisitCompletedError: The visit is already terminal.
        """
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.status == VisitStatus.CHECKED_IN:
                raise VisitActiveError(visit_id)
            if visit.is_terminal:
                raise VisitCompletedError(visit_id, visit.status)
            return await self._close(visit, visit.marked_no_show(), "VISIT_NO_SHOW", operator_id)

    async def confirm_host(self, visit_id: UUID, host_id: UUID) -> Visit:
        """Record the host's acknowledgement of the visit."""
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.host_id != host_id:
                raise VisitValidationError(
                    "Only the visit's host can confirm it", field="host_id"
                )
            if visit.is_terminal:
                raise VisitCompletedError(visit_id, visit.status)
            if visit.host_confirmed:
                return visit

            confirmed = visit.with_host_confirmed(self._time.now())
            await self._commit(visit, confirmed, "VISIT_HOST_CONFIRMED", actor_id=host_id)
            return confirmed

    async def approve_security(
        self,
        visit_id: UUID,
        approver_id: UUID,
        notes: str | None = None,
    ) -> Visit:
        """Record security desk approval of the visit."""
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.is_terminal:
                raise VisitCompletedError(visit_id, visit.status)

            approved = visit.with_security_approval(approver_id, self._time.now(), notes)
            await self._commit(
                visit,
                approved,
                "VISIT_SECURITY_APPROVED",
                category=AuditCategory.SECURITY,
                actor_id=approver_id,
                reason=notes,
            )
            return approved

    async def annotate_feedback(
        self,
        visit_id: UUID,
        rating: int | None,
        feedback: str | None,
    ) -> Visit:
        """Attach a rating and feedback to a checked-out visit."""
        _validate_rating(rating)
        async with self._visit_locks.hold(visit_id):
            visit = await self._require_visit(visit_id)
            if visit.status != VisitStatus.CHECKED_OUT:
                raise VisitValidationError(
                    "Feedback can only be recorded for checked-out visits",
                    field="status",
                )
            annotated = visit.with_feedback(rating, feedback, self._time.now())
            await self._commit(visit, annotated, "VISIT_FEEDBACK_RECORDED")
            return annotated

    # -------------------------------------------------------------------------
    # Sweeps
    # -------------------------------------------------------------------------

    async def sweep_overdue(self, now: datetime | None = None) -> list[Visit]:
        """Emit one overdue advisory per checked-in visit past its expected checkout.

        Returns:
            Visits notified in this run.
        """
        now = now or self._time.now()
        notified: list[Visit] = []
        for candidate in await self._visits.list_by_status(VisitStatus.CHECKED_IN):
            if not candidate.is_overdue(now) or candidate.overdue_notified_at is not None:
                continue
            async with self._visit_locks.hold(candidate.id):
                visit = await self._visits.get(candidate.id)
                if (
                    visit is None
                    or not visit.is_overdue(now)
                    or visit.overdue_notified_at is not None
                ):
                    continue
                assert visit.expected_checkout is not None
                visitor = await self._visitors.get(visit.visitor_id)
                flagged = visit.with_overdue_notified(now)
                await self._commit(
                    visit,
                    flagged,
                    "VISIT_OVERDUE",
                    outcome=AuditOutcome.WARNING,
                    event=VisitOverdueEvent(
                        visit_id=visit.id,
                        visitor_id=visit.visitor_id,
                        host_id=visit.host_id,
                        visitor_name=visitor.full_name if visitor else "Visitor",
                        expected_checkout=visit.expected_checkout,
                        detected_at=now,
                    ),
                )
                notified.append(flagged)

        if notified:
            self._log_operation("sweep_overdue").info(
                "overdue_visits_notified", count=len(notified)
            )
        return notified

    async def sweep_expired_pre_registrations(self, now: datetime | None = None) -> list[Visit]:
        """Expire pre-registered visits whose QR token TTL has elapsed."""
        now = now or self._time.now()
        expired: list[Visit] = []
        for candidate in await self._visits.list_by_status(VisitStatus.PRE_REGISTERED):
            if not candidate.is_token_expired(now):
                continue
            async with self._visit_locks.hold(candidate.id):
                visit = await self._visits.get(candidate.id)
                if (
                    visit is None
                    or visit.status != VisitStatus.PRE_REGISTERED
                    or not visit.is_token_expired(now)
                ):
                    continue
                expired.append(
                    await self._close(
                        visit, visit.expired(), "VISIT_EXPIRED", None, closed_at=now
                    )
                )

        if expired:
            self._log_operation("sweep_expired_pre_registrations").info(
                "pre_registrations_expired", count=len(expired)
            )
        return expired

    async def sweep_no_shows(self, now: datetime | None = None) -> list[Visit]:
        """Mark pre-registered visits as no-show once the arrival grace has passed."""
        now = now or self._time.now()
        grace = timedelta(minutes=self._config.no_show_grace_minutes)
        marked: list[Visit] = []
        for candidate in await self._visits.list_by_status(VisitStatus.PRE_REGISTERED):
            if not _is_no_show(candidate, now, grace):
                continue
            async with self._visit_locks.hold(candidate.id):
                visit = await self._visits.get(candidate.id)
                if (
                    visit is None
                    or visit.status != VisitStatus.PRE_REGISTERED
                    or not _is_no_show(visit, now, grace)
                ):
                    continue
                marked.append(
                    await self._close(
                        visit, visit.marked_no_show(), "VISIT_NO_SHOW", None, closed_at=now
                    )
                )

        if marked:
            self._log_operation("sweep_no_shows").info("visits_marked_no_show", count=len(marked))
        return marked

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_visit(self, visit_id: UUID) -> Visit:
        return await self._require_visit(visit_id)

    async def list_active(self) -> list[Visit]:
        return await self._visits.list_by_status(VisitStatus.CHECKED_IN)

    async def list_overdue(self, now: datetime | None = None) -> list[Visit]:
        now = now or self._time.now()
        return [v for v in await self.list_active() if v.is_overdue(now)]

    async def evacuation_list(self) -> list[Visit]:
        """Checked-in visits not yet marked evacuated."""
        return [v for v in await self.list_active() if not v.emergency_evacuated]

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    async def _close(
        self,
        visit: Visit,
        closed: Visit,
        action: str,
        operator_id: UUID | None,
        *,
        closed_at: datetime | None = None,
    ) -> Visit:
        await self._commit(
            visit,
            closed,
            action,
            actor_id=operator_id,
            event=VisitClosedEvent(
                visit_id=visit.id,
                visitor_id=visit.visitor_id,
                host_id=visit.host_id,
                status=closed.status.value,
                closed_at=closed_at or self._time.now(),
            ),
        )
        return closed

    async def _commit(
        self,
        previous: Visit | None,
        visit: Visit,
        action: str,
        *,
        category: AuditCategory = AuditCategory.DATA_MODIFICATION,
        outcome: AuditOutcome = AuditOutcome.SUCCESS,
        severity: AuditSeverity = AuditSeverity.LOW,
        risk_level: RiskLevel = RiskLevel.LOW,
        actor_id: UUID | None = None,
        reason: str | None = None,
        context: RequestContext | None = None,
        event: OutboxEvent | None = None,
    ) -> None:
        await self._visits.save(visit)
        try:
            await self._audit.record(
                action,
                category,
                outcome=outcome,
                severity=severity,
                risk_level=risk_level,
                actor_id=actor_id,
                visitor_id=visit.visitor_id,
                visit_id=visit.id,
                details=VisitTransitionDetails(
                    from_status=previous.status.value if previous else None,
                    to_status=visit.status.value,
                    purpose=visit.purpose if previous is None else None,
                    reason=reason,
                ),
                before=previous.to_dict() if previous else None,
                after=visit.to_dict(),
                context=context,
            )
        except AuditWriteError:
            if previous is None:
                await self._visits.remove(visit.id)
            else:
                await self._visits.save(previous)
            self._log_operation("commit", visit_id=str(visit.id), action=action).warning(
                "visit_transition_rolled_back"
            )
            raise

        if previous is not None and previous.status != visit.status:
            self._occupancy.apply(
                VisitTransition(
                    visit_id=visit.id,
                    from_status=previous.status,
                    to_status=visit.status,
                    at=self._time.now(),
                )
            )
        if event is not None:
            self._publisher.publish(event)

    async def _record_policy_violation(
        self,
        action: str,
        category: AuditCategory,
        *,
        policy: str,
        reason: str,
        attempted_action: str,
        actor_id: UUID | None,
        visitor_id: UUID | None = None,
        visit_id: UUID | None = None,
        context: RequestContext | None = None,
        severity: AuditSeverity = AuditSeverity.HIGH,
        risk_level: RiskLevel = RiskLevel.HIGH,
    ) -> None:
        await self._audit.record(
            action,
            category,
            outcome=AuditOutcome.FAILURE,
            severity=severity,
            risk_level=risk_level,
            actor_id=actor_id,
            visitor_id=visitor_id,
            visit_id=visit_id,
            details=PolicyViolationDetails(
                policy=policy,
                reason=reason,
                attempted_action=attempted_action,
            ),
            context=context,
        )

    async def _require_visit(self, visit_id: UUID) -> Visit:
        visit = await self._visits.get(visit_id)
        if visit is None:
            raise VisitNotFoundError(visit_id)
        return visit

    async def _require_visitor(self, visitor_id: UUID) -> Visitor:
        visitor = await self._visitors.get(visitor_id)
        if visitor is None:
            raise VisitorNotFoundError(visitor_id)
        return visitor


def _validate_rating(rating: object) -> None:
    if rating is None:
        return
    # bool is an int subclass; "5" arrives from loosely typed clients
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise VisitValidationError("Rating must be an integer between 1 and 5", field="rating")


def _is_no_show(visit: Visit, now: datetime, grace: timedelta) -> bool:
    return visit.scheduled_arrival is not None and visit.scheduled_arrival + grace < now
