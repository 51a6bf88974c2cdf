"""Tests for clock-in / clock-out on the time entry ledger."""

import threading
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from timeclock_payroll.errors import (
    ActiveEntryExists,
    AlreadyClockedOut,
    InvalidInterval,
    LocationRejected,
    NoActiveEntry,
    ScheduleNotAssigned,
    ScheduleNotFound,
)
from timeclock_payroll.events import ClockedIn, ClockedOut, ClockInRejected
from timeclock_payroll.geo import RejectionReason
from timeclock_payroll.scheduling import ShiftInterval
from timeclock_payroll.timekeeping import EntryState


class TestClockIn:
    """Starting a time entry."""

    def test_verified_clock_in(self, ledger, shift, site, sample_at, north_of, events):
        entry = ledger.clock_in(
            shift.employee_id, shift.schedule_id, sample_at(north_of(site.center, 20))
        )

        assert entry.is_active
        assert entry.state == EntryState.ACTIVE
        assert entry.verified is True
        assert entry.manual_entry is False
        assert entry.work_date == date(2024, 1, 15)
        assert entry.clock_in.distance_meters == pytest.approx(20, abs=1)
        assert ledger.active_entry(shift.employee_id) == entry

        assert [type(e) for e in events] == [ClockedIn]
        assert events[0].entry_id == entry.id
        assert events[0].verified is True

    def test_second_clock_in_rejected(self, ledger, shift, site, sample_at):
        first = ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))

        with pytest.raises(ActiveEntryExists) as exc_info:
            ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))

        assert exc_info.value.active_entry_id == first.id

    def test_unknown_schedule(self, ledger, employee_id):
        with pytest.raises(ScheduleNotFound):
            ledger.clock_in(employee_id, uuid4())

    def test_someone_elses_schedule(self, ledger, shift, other_employee_id):
        with pytest.raises(ScheduleNotAssigned):
            ledger.clock_in(other_employee_id, shift.schedule_id)

    def test_outside_geofence_rejected(
        self, ledger, shift, site, sample_at, north_of, events, entry_store
    ):
        with pytest.raises(LocationRejected) as exc_info:
            ledger.clock_in(
                shift.employee_id, shift.schedule_id, sample_at(north_of(site.center, 200))
            )

        outcome = exc_info.value.outcome
        assert outcome.reason == RejectionReason.OUTSIDE_RADIUS
        assert outcome.distance_meters == pytest.approx(200, abs=1)
        assert entry_store.list_entries(shift.employee_id) == []
        assert [type(e) for e in events] == [ClockInRejected]
        assert events[0].reason == "outside_radius"

    def test_rejection_bypass_records_manual_entry(
        self, ledger, shift, site, sample_at, north_of, events
    ):
        entry = ledger.clock_in(
            shift.employee_id,
            shift.schedule_id,
            sample_at(north_of(site.center, 200)),
            allow_unverified=True,
        )

        assert entry.verified is False
        assert entry.manual_entry is True
        assert entry.clock_in.location is not None
        assert [type(e) for e in events] == [ClockInRejected, ClockedIn]

    def test_no_sample_at_geofenced_site_is_unverified(self, ledger, shift):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id)

        assert entry.verified is False
        assert entry.clock_in.location is None

    def test_branch_without_geofence_verifies(self, ledger, directory, employee_id):
        shift = directory.add_shift(
            ShiftInterval(uuid4(), employee_id, date(2024, 1, 15), time(9), time(17))
        )
        entry = ledger.clock_in(employee_id, shift.schedule_id)
        assert entry.verified is True

    def test_holiday_shift_flags_entry(self, ledger, directory, employee_id):
        shift = directory.add_shift(
            ShiftInterval(
                uuid4(), employee_id, date(2024, 1, 15), time(9), time(17), is_holiday=True
            )
        )
        assert ledger.clock_in(employee_id, shift.schedule_id).holiday is True

    def test_concurrent_clock_ins_create_one_entry(self, ledger, shift, site, sample_at):
        """Only one of many simultaneous clock-ins wins."""
        barrier = threading.Barrier(8)
        successes = []
        conflicts = []

        def attempt():
            barrier.wait()
            try:
                successes.append(
                    ledger.clock_in(
                        shift.employee_id, shift.schedule_id, sample_at(site.center)
                    )
                )
            except ActiveEntryExists as e:
                conflicts.append(e)

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(successes) == 1
        assert len(conflicts) == 7
        assert ledger.active_entry(shift.employee_id).id == successes[0].id


class TestClockOut:
    """Completing a time entry."""

    def test_clock_out_computes_hours(
        self, ledger, shift, site, sample_at, clock, events
    ):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))
        clock.advance(hours=8, minutes=15)

        completed = ledger.clock_out(entry.id, sample_at(site.center))

        assert completed.total_hours == Decimal("8.25")
        assert completed.verified is True
        assert completed.state == EntryState.COMPLETED
        assert ledger.active_entry(shift.employee_id) is None
        assert isinstance(events[-1], ClockedOut)
        assert events[-1].total_hours == Decimal("8.25")

    def test_unverified_clock_out_unverifies_entry(self, ledger, shift, site, sample_at, clock):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))
        clock.advance(hours=8)

        completed = ledger.clock_out(entry.id)

        assert completed.clock_in.verified is True
        assert completed.clock_out.verified is False
        assert completed.verified is False

    def test_rejected_clock_out_leaves_entry_open(
        self, ledger, shift, site, sample_at, north_of, clock
    ):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id, sample_at(site.center))
        clock.advance(hours=8)

        with pytest.raises(LocationRejected):
            ledger.clock_out(entry.id, sample_at(north_of(site.center, 500)))

        assert ledger.active_entry(shift.employee_id).id == entry.id

    def test_clock_out_twice(self, ledger, shift, clock):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id)
        clock.advance(hours=1)
        ledger.clock_out(entry.id)

        with pytest.raises(AlreadyClockedOut):
            ledger.clock_out(entry.id)

    def test_unknown_entry(self, ledger):
        with pytest.raises(NoActiveEntry):
            ledger.clock_out(uuid4())

    def test_clock_running_backwards(self, ledger, shift, clock):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id)
        clock.advance(minutes=-5)

        with pytest.raises(InvalidInterval):
            ledger.clock_out(entry.id)

        assert ledger.active_entry(shift.employee_id) is not None

    def test_can_clock_in_again_after_clock_out(self, ledger, shift, clock):
        entry = ledger.clock_in(shift.employee_id, shift.schedule_id)
        clock.advance(hours=4)
        ledger.clock_out(entry.id)

        again = ledger.clock_in(shift.employee_id, shift.schedule_id)
        assert again.id != entry.id
