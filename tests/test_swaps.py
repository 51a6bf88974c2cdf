"""Tests for the shift swap workflow."""

from datetime import date, datetime, time, timezone
from uuid import uuid4

import pytest

from timeclock_payroll.errors import (
    InvalidTransitionError,
    ScheduleNotAssigned,
    ScheduleNotFound,
    SwapAlreadyPending,
    SwapNotEligible,
    SwapRequestNotFound,
    ValidationError,
)
from timeclock_payroll.events import SwapRequested, SwapResolved
from timeclock_payroll.scheduling import ShiftInterval, ShiftSwapService, SwapStatus

BEFORE_SHIFTS = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def swap_clock(clock):
    clock.now = BEFORE_SHIFTS
    return clock


@pytest.fixture
def service(directory, swap_store, emitter, swap_clock):
    return ShiftSwapService(directory, swap_store, emitter=emitter, clock=swap_clock)


@pytest.fixture
def my_shift(directory, employee_id):
    return directory.add_shift(
        ShiftInterval(uuid4(), employee_id, date(2024, 1, 15), time(9), time(17))
    )


@pytest.fixture
def their_shift(directory, other_employee_id):
    return directory.add_shift(
        ShiftInterval(uuid4(), other_employee_id, date(2024, 1, 16), time(9), time(17))
    )


@pytest.fixture
def manager_id():
    return uuid4()


class TestRequestSwap:
    """Proposing a swap."""

    def test_request_creates_pending_swap(
        self, service, my_shift, their_shift, employee_id, other_employee_id, events
    ):
        swap = service.request_swap(
            employee_id, my_shift.schedule_id, their_shift.schedule_id, "Doctor visit"
        )

        assert swap.status == SwapStatus.PENDING
        assert swap.target_employee_id == other_employee_id
        assert swap.created_at == BEFORE_SHIFTS
        assert [type(e) for e in events] == [SwapRequested]

    def test_reason_required(self, service, my_shift, their_shift, employee_id):
        with pytest.raises(ValidationError):
            service.request_swap(employee_id, my_shift.schedule_id, their_shift.schedule_id, " ")

    def test_unknown_target_schedule(self, service, my_shift, employee_id):
        with pytest.raises(ScheduleNotFound):
            service.request_swap(employee_id, my_shift.schedule_id, uuid4(), "trade")

    def test_requester_must_own_shift(
        self, service, my_shift, their_shift, other_employee_id
    ):
        with pytest.raises(ScheduleNotAssigned):
            service.request_swap(
                other_employee_id, my_shift.schedule_id, their_shift.schedule_id, "trade"
            )

    def test_past_shift_not_eligible(
        self, service, my_shift, their_shift, employee_id, swap_clock
    ):
        swap_clock.now = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)

        with pytest.raises(SwapNotEligible) as exc_info:
            service.request_swap(
                employee_id, my_shift.schedule_id, their_shift.schedule_id, "trade"
            )

        assert exc_info.value.reasons == [
            "Cannot swap a shift that is today or in the past"
        ]

    def test_schedule_already_in_pending_swap(
        self, service, directory, my_shift, their_shift, employee_id, other_employee_id
    ):
        service.request_swap(employee_id, my_shift.schedule_id, their_shift.schedule_id, "one")
        third = directory.add_shift(
            ShiftInterval(uuid4(), other_employee_id, date(2024, 1, 17), time(9), time(17))
        )

        with pytest.raises(SwapAlreadyPending) as exc_info:
            service.request_swap(employee_id, my_shift.schedule_id, third.schedule_id, "two")

        assert exc_info.value.schedule_id == my_shift.schedule_id


class TestResolveSwap:
    """Approving and rejecting a swap."""

    @pytest.fixture
    def swap(self, service, my_shift, their_shift, employee_id):
        return service.request_swap(
            employee_id, my_shift.schedule_id, their_shift.schedule_id, "Family event"
        )

    def test_approve(self, service, swap, manager_id, events):
        resolved = service.resolve_swap(swap.id, True, manager_id, notes="ok")

        assert resolved.status == SwapStatus.APPROVED
        assert resolved.resolved_by == manager_id
        assert resolved.notes == "ok"
        assert isinstance(events[-1], SwapResolved)
        assert events[-1].status == "approved"

    def test_reject_frees_schedules(
        self, service, swap, manager_id, my_shift, their_shift, employee_id
    ):
        service.resolve_swap(swap.id, False, manager_id)

        again = service.request_swap(
            employee_id, my_shift.schedule_id, their_shift.schedule_id, "retry"
        )
        assert again.id != swap.id

    def test_resolve_twice(self, service, swap, manager_id):
        service.resolve_swap(swap.id, False, manager_id)

        with pytest.raises(InvalidTransitionError):
            service.resolve_swap(swap.id, True, manager_id)

    def test_unknown_swap(self, service, manager_id):
        with pytest.raises(SwapRequestNotFound):
            service.resolve_swap(uuid4(), True, manager_id)

    def test_eligibility_rechecked_on_approval(
        self, service, swap, directory, employee_id, manager_id, swap_store
    ):
        """A conflicting shift added after the request blocks approval."""
        directory.add_shift(
            ShiftInterval(uuid4(), employee_id, date(2024, 1, 16), time(12), time(20))
        )

        with pytest.raises(SwapNotEligible):
            service.resolve_swap(swap.id, True, manager_id)

        assert swap_store.get_swap(swap.id).status == SwapStatus.PENDING

    def test_reject_skips_eligibility(
        self, service, swap, manager_id, swap_clock
    ):
        swap_clock.now = datetime(2024, 1, 20, tzinfo=timezone.utc)
        resolved = service.resolve_swap(swap.id, False, manager_id)
        assert resolved.status == SwapStatus.REJECTED
