"""Schedule conflict detection.

HARD STOP rule: an employee may not hold overlapping shifts.

Intervals are half-open: ``[start, end)``. Two shifts that merely touch
(one ends at 13:00, the next starts at 13:00) do not conflict. A shift whose
end time is earlier than its start time runs past midnight into the next
day, so the checker also looks at the neighbouring dates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING, Iterable
from uuid import UUID

from timeclock_payroll.errors import ScheduleConflictDetected, ValidationError

if TYPE_CHECKING:
    from timeclock_payroll.scheduling.directory import ScheduleDirectory


@dataclass(frozen=True)
class ShiftInterval:
    """A scheduled shift, owned by the schedule store."""

    schedule_id: UUID
    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    branch_id: UUID | None = None
    is_holiday: bool = False

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time < self.start_time

    def bounds(self) -> tuple[datetime, datetime]:
        """Absolute ``[start, end)`` of the shift."""
        return shift_bounds(self.shift_date, self.start_time, self.end_time)


def shift_bounds(shift_date: date, start_time: time, end_time: time) -> tuple[datetime, datetime]:
    """Convert a date and wall-clock times into an absolute interval."""
    if start_time == end_time:
        raise ValidationError(
            f"Shift start and end are both {start_time.isoformat()}",
            shift_date=shift_date.isoformat(),
        )
    start = datetime.combine(shift_date, start_time)
    end = datetime.combine(shift_date, end_time)
    if end < start:
        end += timedelta(days=1)
    return start, end


def intervals_overlap(
    a: tuple[datetime, datetime], b: tuple[datetime, datetime]
) -> bool:
    """Half-open overlap: ``startA < endB and startB < endA``."""
    return a[0] < b[1] and b[0] < a[1]


class ScheduleConflictChecker:
    """Detects overlapping shifts for an employee.

    Reads intervals through a ScheduleDirectory and never mutates them.
    Shift dates are wall-clock dates in ``tz``, the branch timezone.
    """

    def __init__(self, directory: ScheduleDirectory, tz: tzinfo = timezone.utc):
        self.directory = directory
        self.tz = tz

    def find_conflicts(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_schedule_ids: Iterable[UUID] = (),
    ) -> list[ShiftInterval]:
        """Return every existing shift that overlaps the proposed one."""
        proposed = shift_bounds(shift_date, start_time, end_time)
        excluded = set(exclude_schedule_ids)

        # Overnight shifts on the previous day can reach into this one, and
        # an overnight proposal can reach into the next day.
        dates = [shift_date - timedelta(days=1), shift_date, shift_date + timedelta(days=1)]

        conflicts: list[ShiftInterval] = []
        for shift in self.directory.shifts_for(employee_id, dates):
            if shift.schedule_id in excluded:
                continue
            if intervals_overlap(proposed, shift.bounds()):
                conflicts.append(shift)

        conflicts.sort(key=lambda s: (s.shift_date, s.start_time, str(s.schedule_id)))
        return conflicts

    def has_conflict(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_schedule_id: UUID | None = None,
    ) -> bool:
        """Check if the employee already has a shift overlapping this one.

        Args:
            employee_id: Employee the shift would belong to
            shift_date: Shift date (local)
            start_time: Shift start (local)
            end_time: Shift end (local); earlier than start means overnight
            exclude_schedule_id: Schedule to ignore (the one being edited)
        """
        excluded = [exclude_schedule_id] if exclude_schedule_id else []
        return bool(
            self.find_conflicts(employee_id, shift_date, start_time, end_time, excluded)
        )

    def ensure_no_conflict(
        self,
        employee_id: UUID,
        shift_date: date,
        start_time: time,
        end_time: time,
        exclude_schedule_id: UUID | None = None,
    ) -> None:
        """Raise ScheduleConflictDetected if the shift would overlap."""
        excluded = [exclude_schedule_id] if exclude_schedule_id else []
        conflicts = self.find_conflicts(
            employee_id, shift_date, start_time, end_time, excluded
        )
        if conflicts:
            raise ScheduleConflictDetected(employee_id, conflicts)

    def check_swap(
        self,
        requester_shift: ShiftInterval,
        target_shift: ShiftInterval,
        now: datetime,
    ) -> SwapEligibility:
        """Decide whether two employees may exchange these shifts.

        Each party is checked against the shift they would receive, ignoring
        both shifts being exchanged.
        """
        reasons: list[str] = []
        today = now.astimezone(self.tz).date()

        if requester_shift.shift_date <= today:
            reasons.append("Cannot swap a shift that is today or in the past")
        if target_shift.shift_date <= today:
            reasons.append("Cannot swap with a shift that is today or in the past")
        if requester_shift.employee_id == target_shift.employee_id:
            reasons.append("Cannot swap shifts with yourself")
            return SwapEligibility(tuple(reasons))

        swapped = (requester_shift.schedule_id, target_shift.schedule_id)
        for receiver, shift in (
            (requester_shift.employee_id, target_shift),
            (target_shift.employee_id, requester_shift),
        ):
            conflicts = self.find_conflicts(
                receiver, shift.shift_date, shift.start_time, shift.end_time, swapped
            )
            if conflicts:
                reasons.append(
                    f"Employee {receiver} has a conflicting shift on "
                    f"{shift.shift_date.isoformat()}"
                )

        return SwapEligibility(tuple(reasons))


@dataclass(frozen=True)
class SwapEligibility:
    reasons: tuple[str, ...] = ()

    @property
    def eligible(self) -> bool:
        return not self.reasons
