"""Unit tests for the Visit lifecycle model."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from visitrack.domain.errors import InvalidVisitTransitionError
from visitrack.domain.models.visit import (
    STATUS_TRANSITION_MATRIX,
    TERMINAL_STATUSES,
    EvacuationDetails,
    NotificationLogEntry,
    Visit,
    VisitStatus,
    duration_minutes,
)

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def make_visit(**overrides: object) -> Visit:
    values: dict[str, object] = {
        "id": uuid4(),
        "visitor_id": uuid4(),
        "host_id": uuid4(),
        "purpose": "Quarterly review",
        "pre_registered_at": T0,
        "qr_token": "token-abc",
        "qr_token_expires_at": T0 + timedelta(hours=24),
        "expected_duration": 60,
    }
    values.update(overrides)
    return Visit(**values)  # type: ignore[arg-type]


class TestVisitStatus:
    """Tests for the status matrix."""

    def test_terminal_statuses_have_no_transitions(self) -> None:
        for status in TERMINAL_STATUSES:
            assert status.is_terminal()
            assert status.valid_transitions() == frozenset()

    def test_checked_in_only_leaves_by_checkout(self) -> None:
        assert STATUS_TRANSITION_MATRIX[VisitStatus.CHECKED_IN] == frozenset(
            {VisitStatus.CHECKED_OUT}
        )

    def test_pre_registered_is_not_terminal(self) -> None:
        assert not VisitStatus.PRE_REGISTERED.is_terminal()


class TestVisitInvariants:
    """Tests for construction-time invariants."""

    def test_empty_purpose_rejected(self) -> None:
        with pytest.raises(ValueError, match="purpose"):
            make_visit(purpose="   ")

    def test_non_positive_duration_rejected(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            make_visit(expected_duration=0)

    def test_actual_duration_requires_both_timestamps(self) -> None:
        with pytest.raises(ValueError, match="actual_duration"):
            make_visit(actual_duration=10)

    def test_checked_in_requires_checked_in_at(self) -> None:
        with pytest.raises(ValueError, match="Checked-in"):
            make_visit(status=VisitStatus.CHECKED_IN)


class TestVisitTransitions:
    """Tests for transition helpers."""

    def test_check_in_computes_expected_checkout(self) -> None:
        operator = uuid4()
        visit = make_visit().checked_in(T0 + timedelta(minutes=5), operator)

        assert visit.status == VisitStatus.CHECKED_IN
        assert visit.checked_in_by == operator
        assert visit.expected_checkout == T0 + timedelta(minutes=65)
        assert visit.is_active

    def test_check_in_without_duration_has_no_expected_checkout(self) -> None:
        visit = make_visit(expected_duration=None).checked_in(T0, uuid4())
        assert visit.expected_checkout is None
        assert not visit.is_overdue(T0 + timedelta(days=2))

    def test_check_out_records_actual_duration(self) -> None:
        visit = make_visit().checked_in(T0 + timedelta(minutes=5), uuid4())
        done = visit.checked_out(T0 + timedelta(minutes=90), uuid4(), rating=4)

        assert done.status == VisitStatus.CHECKED_OUT
        assert done.actual_duration == 85
        assert done.rating == 4
        assert done.feedback_at == T0 + timedelta(minutes=90)
        assert done.is_terminal

    def test_check_out_from_pre_registered_is_invalid(self) -> None:
        with pytest.raises(InvalidVisitTransitionError):
            make_visit().checked_out(T0, uuid4())

    def test_cancel_after_checkout_is_invalid(self) -> None:
        done = make_visit().checked_in(T0, uuid4()).checked_out(T0, uuid4())
        with pytest.raises(InvalidVisitTransitionError):
            done.cancelled(T0, "late")

    def test_cancel_records_reason(self) -> None:
        visit = make_visit().cancelled(T0, "host away")
        assert visit.status == VisitStatus.CANCELLED
        assert visit.cancellation_reason == "host away"
        assert visit.cancelled_at == T0

    @pytest.mark.parametrize(
        "transition", [lambda v: v.expired(), lambda v: v.marked_no_show()]
    )
    def test_checked_in_cannot_expire_or_no_show(self, transition) -> None:  # type: ignore[no-untyped-def]
        visit = make_visit().checked_in(T0, uuid4())
        with pytest.raises(InvalidVisitTransitionError):
            transition(visit)


class TestVisitPredicates:
    """Tests for token and overdue predicates."""

    def test_token_expiry_is_strict(self) -> None:
        visit = make_visit()
        assert not visit.is_token_expired(visit.qr_token_expires_at)
        assert visit.is_token_expired(visit.qr_token_expires_at + timedelta(seconds=1))

    def test_overdue_only_while_checked_in(self) -> None:
        visit = make_visit().checked_in(T0, uuid4())
        assert not visit.is_overdue(T0 + timedelta(minutes=60))
        assert visit.is_overdue(T0 + timedelta(minutes=61))

        done = visit.checked_out(T0 + timedelta(minutes=70), uuid4())
        assert not done.is_overdue(T0 + timedelta(minutes=120))

    def test_minutes_on_site(self) -> None:
        visit = make_visit().checked_in(T0, uuid4())
        assert visit.minutes_on_site(T0 + timedelta(minutes=30)) == 30
        assert make_visit().minutes_on_site(T0 + timedelta(minutes=30)) == 0


class TestVisitFlags:
    """Tests for orthogonal flags."""

    def test_evacuation_keeps_status(self) -> None:
        visit = make_visit().checked_in(T0, uuid4())
        marked = visit.with_evacuation(EvacuationDetails(assembly_point="Car park B"), T0)

        assert marked.status == VisitStatus.CHECKED_IN
        assert marked.emergency_evacuated
        assert marked.evacuation is not None
        assert marked.evacuation.evacuated_at == T0

    def test_notifications_append_in_order(self) -> None:
        first = NotificationLogEntry("visitor_arrived", "realtime", None, "delivered", T0)
        second = NotificationLogEntry("visitor_arrived", "email", None, "failed", T0)
        visit = make_visit().with_notifications((first,)).with_notifications((second,))
        assert visit.notifications_sent == (first, second)

    def test_to_dict_omits_qr_token(self) -> None:
        data = make_visit().to_dict()
        assert "qr_token" not in data
        assert data["status"] == "pre_registered"


class TestDurationMinutes:
    def test_rounds_half_up(self) -> None:
        assert duration_minutes(T0, T0 + timedelta(seconds=90)) == 2
        assert duration_minutes(T0, T0 + timedelta(seconds=89)) == 1
