"""Unit tests for AuditTrailService."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from tests.helpers.fake_time_authority import FakeTimeAuthority
from visitrack.application.services.audit_trail_service import AuditTrailService
from visitrack.config.visitrack_config import RetentionAction, VisitrackConfig
from visitrack.domain.errors import AuditEntryNotFoundError, AuditWriteError
from visitrack.domain.models.audit_log_entry import (
    AuditCategory,
    AuditOutcome,
    RequestContext,
)
from visitrack.infrastructure.stubs.audit_repository_stub import AuditRepositoryStub


@pytest.fixture
def repository() -> AuditRepositoryStub:
    return AuditRepositoryStub()


def make_service(
    repository: AuditRepositoryStub,
    clock: FakeTimeAuthority,
    **config: object,
) -> AuditTrailService:
    return AuditTrailService(repository, clock, VisitrackConfig(**config))  # type: ignore[arg-type]


CONTEXT = RequestContext(
    ip_address="192.0.2.10", user_agent="kiosk/1.0", session_id="s-1", request_id="r-1"
)


class TestRecord:
    """Tests for record."""

    @pytest.mark.asyncio
    async def test_record_stores_entry(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time, audit_retention_days=30)
        visit_id = uuid4()

        entry = await service.record(
            "VISITOR_CHECKED_IN",
            AuditCategory.DATA_MODIFICATION,
            visit_id=visit_id,
            context=CONTEXT,
        )

        assert entry.created_at == fake_time.now()
        assert entry.retention_date == fake_time.now() + timedelta(days=30)
        assert entry.ip_address == "192.0.2.10"
        assert entry.id.version == 7
        assert await service.entries_for_visit(visit_id) == [entry]

    @pytest.mark.asyncio
    async def test_category_override(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(
            repository,
            fake_time,
            audit_retention_days=30,
            audit_retention_overrides={AuditCategory.SECURITY: 365},
        )
        entry = await service.record("CHECK_IN_BLOCKED", AuditCategory.SECURITY)
        assert entry.retention_date == fake_time.now() + timedelta(days=365)

    @pytest.mark.asyncio
    async def test_write_failure_raises_audit_write_error(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time)
        repository.fail_next_appends()

        with pytest.raises(AuditWriteError):
            await service.record("VISITOR_CHECKED_IN", AuditCategory.DATA_MODIFICATION)
        assert repository.entries == []

    @pytest.mark.asyncio
    async def test_query_filters(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time)
        await service.record("A", AuditCategory.SECURITY, outcome=AuditOutcome.FAILURE)
        await service.record("B", AuditCategory.PRIVACY)
        await service.record("C", AuditCategory.SECURITY)

        failures = await service.query(outcome=AuditOutcome.FAILURE)
        assert [e.action for e in failures] == ["A"]
        security = await service.query(category=AuditCategory.SECURITY, limit=1)
        assert [e.action for e in security] == ["A"]


class TestAnonymize:
    """Tests for anonymize."""

    @pytest.mark.asyncio
    async def test_anonymize_is_idempotent(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time)
        entry = await service.record(
            "VISITOR_CHECKED_IN", AuditCategory.DATA_MODIFICATION, context=CONTEXT
        )

        first = await service.anonymize(entry.id)
        fake_time.advance(minutes=5)
        second = await service.anonymize(entry.id)

        assert first.is_anonymized
        assert first.ip_address is None
        assert second == first
        assert (await service.get(entry.id)).anonymized_at == first.anonymized_at

    @pytest.mark.asyncio
    async def test_unknown_entry(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time)
        with pytest.raises(AuditEntryNotFoundError):
            await service.anonymize(uuid4())


class TestRetentionSweep:
    """Tests for sweep_retention."""

    @pytest.mark.asyncio
    async def test_anonymizes_expired_entries_once(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(repository, fake_time, audit_retention_days=1)
        await service.record("OLD", AuditCategory.DATA_ACCESS, context=CONTEXT)
        fake_time.advance(delta=timedelta(days=1))
        await service.record("NEW", AuditCategory.DATA_ACCESS, context=CONTEXT)

        now = fake_time.now() + timedelta(hours=1)
        first = await service.sweep_retention(now)
        second = await service.sweep_retention(now)

        assert first.anonymized == 1
        assert second.anonymized == 0
        assert second.skipped == 1
        by_action = {e.action: e for e in repository.entries}
        assert by_action["OLD"].is_anonymized
        assert not by_action["NEW"].is_anonymized
        assert by_action["NEW"].ip_address == "192.0.2.10"

    @pytest.mark.asyncio
    async def test_delete_action(
        self, repository: AuditRepositoryStub, fake_time: FakeTimeAuthority
    ) -> None:
        service = make_service(
            repository,
            fake_time,
            audit_retention_days=1,
            retention_action=RetentionAction.DELETE,
        )
        await service.record("OLD", AuditCategory.DATA_ACCESS)

        result = await service.sweep_retention(fake_time.now() + timedelta(days=2))

        assert result.deleted == 1
        assert repository.entries == []
        assert (await service.sweep_retention(fake_time.now() + timedelta(days=2))).processed == 0
