"""Tests for time entry correction requests and their resolution."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from timeclock_payroll.errors import (
    CorrectionAlreadyPending,
    CorrectionNotFound,
    CorrectionNotPending,
    EntryNotCompleted,
    EntryNotFound,
    InvalidCorrection,
    InvalidInterval,
)
from timeclock_payroll.events import CorrectionRequested, CorrectionResolved
from timeclock_payroll.timekeeping import (
    CorrectionDecision,
    CorrectionStatus,
    CorrectionType,
    EntryState,
)

CLOCK_IN = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def completed_entry(ledger, shift, site, sample_at, clock):
    """An 8 hour verified entry, 09:00-17:00."""
    entry = ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))
    clock.advance(hours=8)
    return ledger.clock_out(entry.id, sample_at(site.center))


@pytest.fixture
def manager_id():
    return uuid4()


class TestRequestCorrection:
    """Validation when asking for a correction."""

    def test_request_is_pending(self, ledger, completed_entry, events):
        correction = ledger.request_correction(
            completed_entry.id,
            CorrectionType.CLOCK_OUT,
            "  Forgot to clock out  ",
            completed_entry.employee_id,
            requested_clock_out=CLOCK_IN + timedelta(hours=6),
        )

        assert correction.status == CorrectionStatus.PENDING
        assert correction.reason == "Forgot to clock out"
        assert correction.employee_id == completed_entry.employee_id
        assert correction.requested_clock_in is None
        assert isinstance(events[-1], CorrectionRequested)
        assert events[-1].correction_type == "clock_out"

    def test_unknown_entry(self, ledger, employee_id):
        with pytest.raises(EntryNotFound):
            ledger.request_correction(uuid4(), CorrectionType.DELETE, "duplicate", employee_id)

    def test_active_entry_cannot_be_corrected(self, ledger, shift):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id)

        with pytest.raises(EntryNotCompleted):
            ledger.request_correction(
                entry.id, CorrectionType.DELETE, "mistake", shift.employee_id
            )

    def test_blank_reason(self, ledger, completed_entry):
        with pytest.raises(InvalidCorrection):
            ledger.request_correction(
                completed_entry.id, CorrectionType.DELETE, "   ", completed_entry.employee_id
            )

    @pytest.mark.parametrize(
        "correction_type", [CorrectionType.CLOCK_IN, CorrectionType.BOTH]
    )
    def test_missing_clock_in_time(self, ledger, completed_entry, correction_type):
        with pytest.raises(InvalidCorrection):
            ledger.request_correction(
                completed_entry.id,
                correction_type,
                "late badge",
                completed_entry.employee_id,
                requested_clock_out=CLOCK_IN + timedelta(hours=9),
            )

    def test_missing_clock_out_time(self, ledger, completed_entry):
        with pytest.raises(InvalidCorrection):
            ledger.request_correction(
                completed_entry.id,
                CorrectionType.CLOCK_OUT,
                "left early",
                completed_entry.employee_id,
            )

    def test_new_clock_in_after_existing_clock_out(self, ledger, completed_entry):
        with pytest.raises(InvalidInterval):
            ledger.request_correction(
                completed_entry.id,
                CorrectionType.CLOCK_IN,
                "wrong time",
                completed_entry.employee_id,
                requested_clock_in=CLOCK_IN + timedelta(hours=10),
            )

    def test_time_without_offset_rejected(self, ledger, completed_entry):
        with pytest.raises(InvalidCorrection):
            ledger.request_correction(
                completed_entry.id,
                CorrectionType.CLOCK_IN,
                "forgot",
                completed_entry.employee_id,
                requested_clock_in=datetime(2024, 1, 15, 8, 0),
            )

    def test_one_pending_correction_per_entry(self, ledger, completed_entry):
        first = ledger.request_correction(
            completed_entry.id, CorrectionType.DELETE, "duplicate", completed_entry.employee_id
        )

        with pytest.raises(CorrectionAlreadyPending) as exc_info:
            ledger.request_correction(
                completed_entry.id,
                CorrectionType.DELETE,
                "duplicate again",
                completed_entry.employee_id,
            )

        assert exc_info.value.pending_id == first.id

    def test_delete_ignores_supplied_times(self, ledger, completed_entry):
        correction = ledger.request_correction(
            completed_entry.id,
            CorrectionType.DELETE,
            "duplicate",
            completed_entry.employee_id,
            requested_clock_in=CLOCK_IN,
        )
        assert correction.requested_clock_in is None


class TestResolveCorrection:
    """Approving and rejecting corrections."""

    def test_approve_clock_out_recomputes_hours(
        self, ledger, completed_entry, entry_store, manager_id, clock, events
    ):
        correction = ledger.request_correction(
            completed_entry.id,
            CorrectionType.CLOCK_OUT,
            "Left at 15:30",
            completed_entry.employee_id,
            requested_clock_out=CLOCK_IN + timedelta(hours=6, minutes=30),
        )

        resolved = ledger.resolve_correction(
            correction.id, CorrectionDecision.APPROVE, manager_id
        )

        assert resolved.status == CorrectionStatus.APPROVED
        assert resolved.resolved_by == manager_id
        entry = entry_store.get_entry(completed_entry.id)
        assert entry.total_hours == Decimal("6.50")
        assert entry.verified is False
        assert entry.state == EntryState.CORRECTED
        assert entry.corrected_at == clock()
        assert entry.clock_in == completed_entry.clock_in
        assert entry.clock_out.location is None
        assert isinstance(events[-1], CorrectionResolved)
        assert events[-1].status == "approved"

    def test_approve_both(self, ledger, completed_entry, entry_store, manager_id):
        correction = ledger.request_correction(
            completed_entry.id,
            CorrectionType.BOTH,
            "Badge reader was down",
            completed_entry.employee_id,
            requested_clock_in=CLOCK_IN - timedelta(hours=1),
            requested_clock_out=CLOCK_IN + timedelta(hours=9),
        )
        ledger.resolve_correction(correction.id, CorrectionDecision.APPROVE, manager_id)

        assert entry_store.get_entry(completed_entry.id).total_hours == Decimal("10.00")

    def test_approve_delete_keeps_correction_history(
        self, ledger, completed_entry, entry_store, manager_id
    ):
        correction = ledger.request_correction(
            completed_entry.id, CorrectionType.DELETE, "duplicate", completed_entry.employee_id
        )

        ledger.resolve_correction(correction.id, CorrectionDecision.APPROVE, manager_id)

        assert entry_store.get_entry(completed_entry.id) is None
        stored = entry_store.get_correction(correction.id)
        assert stored.status == CorrectionStatus.APPROVED
        assert stored.entry_id == completed_entry.id

    def test_reject_requires_notes(self, ledger, completed_entry, manager_id):
        correction = ledger.request_correction(
            completed_entry.id, CorrectionType.DELETE, "duplicate", completed_entry.employee_id
        )

        with pytest.raises(InvalidCorrection):
            ledger.resolve_correction(correction.id, CorrectionDecision.REJECT, manager_id)

        rejected = ledger.resolve_correction(
            correction.id, CorrectionDecision.REJECT, manager_id, notes="Not a duplicate"
        )
        assert rejected.status == CorrectionStatus.REJECTED
        assert rejected.notes == "Not a duplicate"

    def test_reject_leaves_entry_untouched(
        self, ledger, completed_entry, entry_store, manager_id
    ):
        correction = ledger.request_correction(
            completed_entry.id,
            CorrectionType.CLOCK_OUT,
            "left early",
            completed_entry.employee_id,
            requested_clock_out=CLOCK_IN + timedelta(hours=2),
        )
        ledger.resolve_correction(
            correction.id, CorrectionDecision.REJECT, manager_id, notes="CCTV shows 17:00"
        )

        assert entry_store.get_entry(completed_entry.id) == completed_entry

    def test_cannot_resolve_twice(self, ledger, completed_entry, manager_id):
        correction = ledger.request_correction(
            completed_entry.id, CorrectionType.DELETE, "duplicate", completed_entry.employee_id
        )
        ledger.resolve_correction(
            correction.id, CorrectionDecision.REJECT, manager_id, notes="no"
        )

        with pytest.raises(CorrectionNotPending):
            ledger.resolve_correction(correction.id, CorrectionDecision.APPROVE, manager_id)

    def test_unknown_correction(self, ledger, manager_id):
        with pytest.raises(CorrectionNotFound):
            ledger.resolve_correction(uuid4(), CorrectionDecision.APPROVE, manager_id)

    def test_new_request_allowed_after_rejection(self, ledger, completed_entry, manager_id):
        first = ledger.request_correction(
            completed_entry.id, CorrectionType.DELETE, "duplicate", completed_entry.employee_id
        )
        ledger.resolve_correction(first.id, CorrectionDecision.REJECT, manager_id, notes="no")

        second = ledger.request_correction(
            completed_entry.id,
            CorrectionType.CLOCK_OUT,
            "actually left early",
            completed_entry.employee_id,
            requested_clock_out=CLOCK_IN + timedelta(hours=7),
        )
        assert second.status == CorrectionStatus.PENDING
