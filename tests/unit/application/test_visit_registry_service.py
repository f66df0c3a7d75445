"""Unit tests for VisitRegistryService."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.recording_publisher import RecordingPublisher
from tests.helpers.seed import add_staff, add_visitor, blacklist
from visitrack.application.services.visit_registry_service import VisitRegistryService
from visitrack.bootstrap.container import VisitrackContainer
from visitrack.domain.errors import (
    AlreadyCheckedInError,
    AuditWriteError,
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
    VisitValidationError,
)
from visitrack.domain.events import (
    VISIT_CANCELLED_EVENT_TYPE,
    VISIT_EXPIRED_EVENT_TYPE,
    VISIT_NO_SHOW_EVENT_TYPE,
    VISIT_OVERDUE_EVENT_TYPE,
    VISITOR_ARRIVED_EVENT_TYPE,
    VISITOR_DEPARTED_EVENT_TYPE,
)
from visitrack.domain.models.audit_log_entry import AuditCategory, AuditOutcome
from visitrack.domain.models.visit import EvacuationDetails, VisitStatus
from visitrack.infrastructure.stubs.audit_repository_stub import AuditRepositoryStub


@pytest.fixture
def registry(
    container: VisitrackContainer, recording_publisher: RecordingPublisher
) -> VisitRegistryService:
    """Registry wired to the container's ports with a recording publisher."""
    return VisitRegistryService(
        visit_repository=container.visit_repository,
        visitor_repository=container.visitor_repository,
        user_directory=container.user_directory,
        consent_ledger=container.consent_ledger,
        audit_trail=container.audit_trail,
        occupancy=container.occupancy,
        publisher=recording_publisher,
        time_authority=container.time_authority,
        config=container.config,
    )


@pytest.fixture
def audit_stub(container: VisitrackContainer) -> AuditRepositoryStub:
    repository = container.audit_repository
    assert isinstance(repository, AuditRepositoryStub)
    return repository


@pytest.fixture
def operator_id():  # type: ignore[no-untyped-def]
    return uuid4()


class TestPreRegister:
    """Tests for pre_register."""

    @pytest.mark.asyncio
    async def test_creates_visit_with_token(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        audit_stub: AuditRepositoryStub,
        recording_publisher: RecordingPublisher,
        fake_time: FakeTimeAuthority,
    ) -> None:
        """Test pre-registration stores a visit and audits it once."""
        visitor = await add_visitor(container)
        host = add_staff(container)

        result = await registry.pre_register(visitor.id, host.user_id, " Review ", expected_duration=60)

        assert result.visit.status == VisitStatus.PRE_REGISTERED
        assert result.visit.purpose == "Review"
        assert result.qr_token == result.visit.qr_token
        assert len(result.qr_token) >= 32
        assert result.qr_token_expires_at == fake_time.now() + timedelta(hours=24)
        assert await container.visit_repository.get(result.visit.id) == result.visit
        assert audit_stub.actions().count("VISIT_PRE_REGISTERED") == 1
        assert recording_publisher.events == []

    @pytest.mark.asyncio
    async def test_tokens_are_unique(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        host = add_staff(container)
        tokens = set()
        for _ in range(5):
            visitor = await add_visitor(container)
            result = await registry.pre_register(visitor.id, host.user_id, "Review")
            tokens.add(result.qr_token)
        assert len(tokens) == 5

    @pytest.mark.asyncio
    async def test_empty_purpose_rejected(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        visitor = await add_visitor(container)
        host = add_staff(container)
        with pytest.raises(VisitValidationError):
            await registry.pre_register(visitor.id, host.user_id, "   ")

    @pytest.mark.asyncio
    async def test_non_positive_duration_rejected(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        visitor = await add_visitor(container)
        host = add_staff(container)
        with pytest.raises(VisitValidationError):
            await registry.pre_register(visitor.id, host.user_id, "Review", expected_duration=0)

    @pytest.mark.asyncio
    async def test_unknown_host_rejected(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        visitor = await add_visitor(container)
        with pytest.raises(HostNotFoundError):
            await registry.pre_register(visitor.id, uuid4(), "Review")

    @pytest.mark.asyncio
    async def test_missing_consent_refused_and_audited(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        audit_stub: AuditRepositoryStub,
    ) -> None:
        """Test a visitor without consent cannot be pre-registered."""
        visitor = await add_visitor(container, consent=False)
        host = add_staff(container)

        with pytest.raises(ConsentMissingError):
            await registry.pre_register(visitor.id, host.user_id, "Review")

        assert await container.visit_repository.list_all() == []
        entries = await container.audit_trail.entries_for_visitor(visitor.id)
        assert [e.action for e in entries] == ["PRE_REGISTRATION_CONSENT_MISSING"]
        assert entries[0].outcome == AuditOutcome.FAILURE
        assert entries[0].category == AuditCategory.PRIVACY

    @pytest.mark.asyncio
    async def test_blacklisted_refused_and_audited(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        visitor = await blacklist(container, await add_visitor(container), "trespass")
        host = add_staff(container)

        with pytest.raises(VisitorBlacklistedError):
            await registry.pre_register(visitor.id, host.user_id, "Review")

        entries = await container.audit_trail.query(action="PRE_REGISTRATION_BLOCKED")
        assert len(entries) == 1
        assert entries[0].category == AuditCategory.SECURITY

    @pytest.mark.asyncio
    async def test_audit_failure_removes_visit(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        audit_stub: AuditRepositoryStub,
    ) -> None:
        visitor = await add_visitor(container)
        host = add_staff(container)
        audit_stub.fail_next_appends()

        with pytest.raises(AuditWriteError):
            await registry.pre_register(visitor.id, host.user_id, "Review")

        assert await container.visit_repository.list_all() == []


class TestCheckIn:
    """Tests for check_in and check_in_by_token."""

    @pytest.fixture
    async def pre_registered(self, container: VisitrackContainer, registry: VisitRegistryService):  # type: ignore[no-untyped-def]
        visitor = await add_visitor(container)
        host = add_staff(container)
        return await registry.pre_register(visitor.id, host.user_id, "Review", expected_duration=60)

    @pytest.mark.asyncio
    async def test_check_in_updates_occupancy_and_publishes(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        recording_publisher: RecordingPublisher,
        fake_time: FakeTimeAuthority,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        """Test a successful check-in."""
        fake_time.advance(minutes=5)

        visit = await registry.check_in(pre_registered.visit.id, operator_id)

        assert visit.status == VisitStatus.CHECKED_IN
        assert visit.checked_in_at == fake_time.now()
        assert visit.expected_checkout == fake_time.now() + timedelta(minutes=60)
        assert container.occupancy.current() == 1
        (event,) = recording_publisher.of_type(VISITOR_ARRIVED_EVENT_TYPE)
        assert event.visitor_name == "Ada Lovelace"  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_check_in_by_token(
        self,
        registry: VisitRegistryService,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        visit = await registry.check_in_by_token(pre_registered.qr_token, operator_id)
        assert visit.id == pre_registered.visit.id
        assert visit.status == VisitStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_unknown_token_audited(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(InvalidTokenError):
            await registry.check_in_by_token("not-a-token", operator_id)
        assert len(await container.audit_trail.query(action="INVALID_QR_TOKEN")) == 1

    @pytest.mark.asyncio
    async def test_unknown_visit(
        self, registry: VisitRegistryService, operator_id  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(VisitNotFoundError):
            await registry.check_in(uuid4(), operator_id)

    @pytest.mark.asyncio
    async def test_second_check_in_is_conflict_without_audit(
        self,
        registry: VisitRegistryService,
        audit_stub: AuditRepositoryStub,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        await registry.check_in(pre_registered.visit.id, operator_id)
        before = len(audit_stub.entries)

        with pytest.raises(AlreadyCheckedInError):
            await registry.check_in(pre_registered.visit.id, operator_id)

        assert len(audit_stub.entries) == before

    @pytest.mark.asyncio
    async def test_cancelled_visit_is_completed(
        self,
        registry: VisitRegistryService,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        await registry.cancel(pre_registered.visit.id, "host away")
        with pytest.raises(VisitCompletedError):
            await registry.check_in(pre_registered.visit.id, operator_id)

    @pytest.mark.asyncio
    async def test_expired_token_refused(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        fake_time: FakeTimeAuthority,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        fake_time.advance(delta=timedelta(hours=24, seconds=1))

        with pytest.raises(TokenExpiredError):
            await registry.check_in(pre_registered.visit.id, operator_id)

        assert container.occupancy.current() == 0
        assert len(await container.audit_trail.query(action="CHECK_IN_TOKEN_EXPIRED")) == 1

    @pytest.mark.asyncio
    async def test_blacklist_rechecked_at_gate(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        """Test blacklisting after pre-registration blocks check-in."""
        visitor = await container.visitor_repository.get(pre_registered.visit.visitor_id)
        assert visitor is not None
        await blacklist(container, visitor, "incident")

        with pytest.raises(VisitorBlacklistedError):
            await registry.check_in(pre_registered.visit.id, operator_id)

        stored = await container.visit_repository.get(pre_registered.visit.id)
        assert stored is not None
        assert stored.status == VisitStatus.PRE_REGISTERED
        assert len(await container.audit_trail.query(action="CHECK_IN_BLOCKED")) == 1

    @pytest.mark.asyncio
    async def test_visitor_already_on_site(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        second = await registry.pre_register(
            pre_registered.visit.visitor_id, pre_registered.visit.host_id, "Second"
        )
        await registry.check_in(pre_registered.visit.id, operator_id)

        with pytest.raises(VisitorAlreadyOnSiteError):
            await registry.check_in(second.visit.id, operator_id)
        assert container.occupancy.current() == 1

    @pytest.mark.asyncio
    async def test_audit_failure_restores_previous_visit(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        audit_stub: AuditRepositoryStub,
        recording_publisher: RecordingPublisher,
        pre_registered,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        """Test a failed audit write leaves no trace of the check-in."""
        audit_stub.fail_next_appends()

        with pytest.raises(AuditWriteError):
            await registry.check_in(pre_registered.visit.id, operator_id)

        assert await container.visit_repository.get(pre_registered.visit.id) == pre_registered.visit
        assert container.occupancy.current() == 0
        assert recording_publisher.events == []


class TestCheckOut:
    """Tests for check_out."""

    @pytest.fixture
    async def checked_in(self, container: VisitrackContainer, registry: VisitRegistryService, fake_time: FakeTimeAuthority):  # type: ignore[no-untyped-def]
        visitor = await add_visitor(container)
        host = add_staff(container)
        result = await registry.pre_register(visitor.id, host.user_id, "Review", expected_duration=60)
        fake_time.advance(minutes=5)
        return await registry.check_in(result.visit.id, uuid4())

    @pytest.mark.asyncio
    async def test_check_out_records_duration(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        recording_publisher: RecordingPublisher,
        fake_time: FakeTimeAuthority,
        checked_in,  # type: ignore[no-untyped-def]
        operator_id,  # type: ignore[no-untyped-def]
    ) -> None:
        fake_time.advance(minutes=85)

        visit = await registry.check_out(checked_in.id, operator_id, rating=5, feedback="Great")

        assert visit.status == VisitStatus.CHECKED_OUT
        assert visit.actual_duration == 85
        assert visit.rating == 5
        assert container.occupancy.current() == 0
        (event,) = recording_publisher.of_type(VISITOR_DEPARTED_EVENT_TYPE)
        assert event.actual_duration == 85  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_invalid_rating_rejected(
        self, registry: VisitRegistryService, checked_in, operator_id  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(VisitValidationError):
            await registry.check_out(checked_in.id, operator_id, rating=6)

    @pytest.mark.asyncio
    async def test_double_check_out(
        self, registry: VisitRegistryService, checked_in, operator_id  # type: ignore[no-untyped-def]
    ) -> None:
        await registry.check_out(checked_in.id, operator_id)
        with pytest.raises(NotCheckedInError):
            await registry.check_out(checked_in.id, operator_id)

    @pytest.mark.asyncio
    async def test_cannot_cancel_active_visit(
        self, registry: VisitRegistryService, checked_in  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(VisitActiveError):
            await registry.cancel(checked_in.id, "changed plans")

    @pytest.mark.asyncio
    async def test_feedback_after_checkout(
        self, registry: VisitRegistryService, checked_in, operator_id  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(VisitValidationError):
            await registry.annotate_feedback(checked_in.id, 4, "early")

        await registry.check_out(checked_in.id, operator_id)
        annotated = await registry.annotate_feedback(checked_in.id, 4, "Nice")
        assert annotated.rating == 4
        assert annotated.status == VisitStatus.CHECKED_OUT

    @pytest.mark.asyncio
    async def test_mark_evacuated_keeps_status(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        checked_in,  # type: ignore[no-untyped-def]
    ) -> None:
        marshal = uuid4()
        visit = await registry.mark_evacuated(
            checked_in.id, EvacuationDetails(assembly_point="Car park", marked_by=marshal)
        )

        assert visit.status == VisitStatus.CHECKED_IN
        assert visit.emergency_evacuated
        assert container.occupancy.current() == 1
        assert await registry.evacuation_list() == []


class TestOtherTransitions:
    """Tests for cancel, no-show, confirmation and approval."""

    @pytest.fixture
    async def pre_registered(self, container: VisitrackContainer, registry: VisitRegistryService):  # type: ignore[no-untyped-def]
        visitor = await add_visitor(container)
        host = add_staff(container)
        return await registry.pre_register(
            visitor.id,
            host.user_id,
            "Review",
            scheduled_arrival=container.time_authority.now() + timedelta(hours=1),
        )

    @pytest.mark.asyncio
    async def test_cancel(
        self,
        registry: VisitRegistryService,
        recording_publisher: RecordingPublisher,
        pre_registered,  # type: ignore[no-untyped-def]
    ) -> None:
        visit = await registry.cancel(pre_registered.visit.id, "host away")

        assert visit.status == VisitStatus.CANCELLED
        assert visit.cancellation_reason == "host away"
        assert len(recording_publisher.of_type(VISIT_CANCELLED_EVENT_TYPE)) == 1

        with pytest.raises(VisitCompletedError):
            await registry.cancel(pre_registered.visit.id, "again")

    @pytest.mark.asyncio
    async def test_locks_do_not_accumulate(
        self, container: VisitrackContainer, registry: VisitRegistryService
    ) -> None:
        host = add_staff(container)
        visitor = await add_visitor(container)
        for _ in range(50):
            registration = await registry.pre_register(visitor.id, host.user_id, "Review")
            await registry.cancel(registration.visit.id, "rescheduled")

        checked = await registry.pre_register(visitor.id, host.user_id, "Review")
        await registry.check_in(checked.visit.id, uuid4())
        await registry.check_out(checked.visit.id, uuid4())

        assert len(registry._visit_locks) == 0
        assert len(registry._visitor_locks) == 0

    @pytest.mark.asyncio
    async def test_mark_no_show(
        self, registry: VisitRegistryService, pre_registered  # type: ignore[no-untyped-def]
    ) -> None:
        visit = await registry.mark_no_show(pre_registered.visit.id)
        assert visit.status == VisitStatus.NO_SHOW

    @pytest.mark.asyncio
    async def test_confirm_host_only_by_host(
        self, registry: VisitRegistryService, pre_registered  # type: ignore[no-untyped-def]
    ) -> None:
        with pytest.raises(VisitValidationError):
            await registry.confirm_host(pre_registered.visit.id, uuid4())

        visit = await registry.confirm_host(pre_registered.visit.id, pre_registered.visit.host_id)
        assert visit.host_confirmed
        again = await registry.confirm_host(pre_registered.visit.id, pre_registered.visit.host_id)
        assert again == visit

    @pytest.mark.asyncio
    async def test_approve_security(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        pre_registered,  # type: ignore[no-untyped-def]
    ) -> None:
        approver = uuid4()
        visit = await registry.approve_security(pre_registered.visit.id, approver, "ID checked")

        assert visit.security_approved
        assert visit.security_approved_by == approver
        (entry,) = await container.audit_trail.query(action="VISIT_SECURITY_APPROVED")
        assert entry.category == AuditCategory.SECURITY


class TestSweeps:
    """Tests for the periodic sweeps."""

    @pytest.mark.asyncio
    async def test_overdue_emitted_once(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        recording_publisher: RecordingPublisher,
        fake_time: FakeTimeAuthority,
    ) -> None:
        """Test the overdue advisory fires exactly once per visit."""
        visitor = await add_visitor(container)
        host = add_staff(container)
        result = await registry.pre_register(visitor.id, host.user_id, "Review", expected_duration=30)
        await registry.check_in(result.visit.id, uuid4())

        assert await registry.sweep_overdue(fake_time.now() + timedelta(minutes=30)) == []

        later = fake_time.now() + timedelta(minutes=31)
        notified = await registry.sweep_overdue(later)
        assert [v.id for v in notified] == [result.visit.id]
        assert await registry.sweep_overdue(later + timedelta(minutes=10)) == []

        assert len(recording_publisher.of_type(VISIT_OVERDUE_EVENT_TYPE)) == 1
        (entry,) = await container.audit_trail.query(action="VISIT_OVERDUE")
        assert entry.outcome == AuditOutcome.WARNING
        assert [v.id for v in await registry.list_overdue(later)] == [result.visit.id]

    @pytest.mark.asyncio
    async def test_expired_pre_registrations(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        fake_time: FakeTimeAuthority,
    ) -> None:
        visitor = await add_visitor(container)
        host = add_staff(container)
        result = await registry.pre_register(visitor.id, host.user_id, "Review")

        assert await registry.sweep_expired_pre_registrations(fake_time.now()) == []
        expired = await registry.sweep_expired_pre_registrations(
            fake_time.now() + timedelta(hours=25)
        )

        assert [v.status for v in expired] == [VisitStatus.EXPIRED]
        with pytest.raises(TokenExpiredError):
            await registry.check_in(result.visit.id, uuid4())

    @pytest.mark.asyncio
    async def test_no_shows_respect_grace(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        fake_time: FakeTimeAuthority,
    ) -> None:
        visitor = await add_visitor(container)
        host = add_staff(container)
        arrival = fake_time.now() + timedelta(hours=1)
        result = await registry.pre_register(
            visitor.id, host.user_id, "Review", scheduled_arrival=arrival
        )

        assert await registry.sweep_no_shows(arrival + timedelta(minutes=120)) == []
        marked = await registry.sweep_no_shows(arrival + timedelta(minutes=121))
        assert [v.id for v in marked] == [result.visit.id]
        assert marked[0].status == VisitStatus.NO_SHOW

    @pytest.mark.asyncio
    async def test_sweeps_stamp_the_sweep_time(
        self,
        container: VisitrackContainer,
        registry: VisitRegistryService,
        recording_publisher: RecordingPublisher,
        fake_time: FakeTimeAuthority,
    ) -> None:
        """Test closing events carry the time the sweep ran for, not the clock."""
        visitor = await add_visitor(container)
        other = await add_visitor(container, email="other@example.com")
        host = add_staff(container)
        await registry.pre_register(visitor.id, host.user_id, "Review")
        arrival = fake_time.now() + timedelta(hours=1)
        await registry.pre_register(other.id, host.user_id, "Audit", scheduled_arrival=arrival)

        no_show_at = arrival + timedelta(hours=3)
        expired_at = fake_time.now() + timedelta(hours=25)
        fake_time.advance(delta=timedelta(days=2))
        await registry.sweep_no_shows(no_show_at)
        await registry.sweep_expired_pre_registrations(expired_at)

        (no_show,) = recording_publisher.of_type(VISIT_NO_SHOW_EVENT_TYPE)
        (expired,) = recording_publisher.of_type(VISIT_EXPIRED_EVENT_TYPE)
        assert no_show.closed_at == no_show_at
        assert expired.closed_at == expired_at
