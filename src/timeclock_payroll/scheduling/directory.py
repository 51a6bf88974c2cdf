"""Read-only view of the external schedule store."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol, runtime_checkable
from uuid import UUID

from timeclock_payroll.geo.verifier import Site
from timeclock_payroll.scheduling.conflicts import ShiftInterval


@runtime_checkable
class ScheduleDirectory(Protocol):
    """Shift and branch geofence lookups."""

    def get_shift(self, schedule_id: UUID) -> ShiftInterval | None:
        ...

    def shifts_for(self, employee_id: UUID, dates: Iterable[date]) -> list[ShiftInterval]:
        ...

    def site_for(self, schedule_id: UUID) -> Site | None:
        """Geofence of the branch the schedule belongs to.

        ``None`` means the branch is unknown to the registry, which is
        treated the same as a branch without coordinates.
        """
        ...


class InMemoryScheduleDirectory:
    """Dict-backed ScheduleDirectory for tests and the default app wiring."""

    def __init__(self) -> None:
        self._shifts: dict[UUID, ShiftInterval] = {}
        self._sites: dict[UUID, Site] = {}

    def add_site(self, branch_id: UUID, site: Site) -> None:
        self._sites[branch_id] = site

    def add_shift(self, shift: ShiftInterval) -> ShiftInterval:
        self._shifts[shift.schedule_id] = shift
        return shift

    def get_shift(self, schedule_id: UUID) -> ShiftInterval | None:
        return self._shifts.get(schedule_id)

    def shifts_for(self, employee_id: UUID, dates: Iterable[date]) -> list[ShiftInterval]:
        wanted = set(dates)
        return [
            s
            for s in self._shifts.values()
            if s.employee_id == employee_id and s.shift_date in wanted
        ]

    def site_for(self, schedule_id: UUID) -> Site | None:
        shift = self._shifts.get(schedule_id)
        if shift is None or shift.branch_id is None:
            return None
        return self._sites.get(shift.branch_id)
