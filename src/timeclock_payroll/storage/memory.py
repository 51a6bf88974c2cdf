"""In-memory stores.

Each store guards its state with a single lock so the conditional writes
are atomic across threads. Used by tests and by the ``memory`` storage
backend.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from uuid import UUID

from timeclock_payroll.errors import (
    ActiveEntryExists,
    AlreadyClockedOut,
    CorrectionAlreadyPending,
    CorrectionNotFound,
    CorrectionNotPending,
    InvalidTransitionError,
    NoActiveEntry,
    PayrollPeriodNotFound,
    SwapAlreadyPending,
    SwapRequestNotFound,
)
from timeclock_payroll.payroll.types import (
    AdvanceStatus,
    PayrollCalculation,
    PayrollPeriod,
    PeriodStatus,
    SalaryAdvance,
)
from timeclock_payroll.scheduling.swaps import SwapRequest, SwapStatus
from timeclock_payroll.timekeeping.types import Correction, CorrectionStatus, TimeEntry


class InMemoryTimeEntryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[UUID, TimeEntry] = {}
        self._corrections: dict[UUID, Correction] = {}

    def _active_for(self, employee_id: UUID) -> TimeEntry | None:
        for entry in self._entries.values():
            if entry.employee_id == employee_id and entry.is_active:
                return entry
        return None

    def insert_if_no_active_entry(self, entry: TimeEntry) -> TimeEntry:
        with self._lock:
            active = self._active_for(entry.employee_id)
            if active is not None:
                raise ActiveEntryExists(entry.employee_id, active.id)
            self._entries[entry.id] = entry
            return entry

    def complete_entry_if_active(self, entry: TimeEntry) -> TimeEntry:
        with self._lock:
            stored = self._entries.get(entry.id)
            if stored is None:
                raise NoActiveEntry(entry.id)
            if not stored.is_active:
                raise AlreadyClockedOut(entry.id)
            self._entries[entry.id] = entry
            return entry

    def get_entry(self, entry_id: UUID) -> TimeEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def get_active_entry(self, employee_id: UUID) -> TimeEntry | None:
        with self._lock:
            return self._active_for(employee_id)

    def list_entries(
        self,
        employee_id: UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TimeEntry]:
        with self._lock:
            entries = [
                e
                for e in self._entries.values()
                if (employee_id is None or e.employee_id == employee_id)
                and (start is None or e.work_date >= start)
                and (end is None or e.work_date <= end)
            ]
        return sorted(entries, key=lambda e: (e.clock_in.time, str(e.id)))

    def insert_if_no_pending_correction(self, correction: Correction) -> Correction:
        with self._lock:
            for existing in self._corrections.values():
                if existing.entry_id == correction.entry_id and existing.is_pending:
                    raise CorrectionAlreadyPending(correction.entry_id, existing.id)
            self._corrections[correction.id] = correction
            return correction

    def get_correction(self, correction_id: UUID) -> Correction | None:
        with self._lock:
            return self._corrections.get(correction_id)

    def list_corrections(
        self,
        employee_id: UUID | None = None,
        status: CorrectionStatus | None = None,
    ) -> list[Correction]:
        with self._lock:
            corrections = [
                c
                for c in self._corrections.values()
                if (employee_id is None or c.employee_id == employee_id)
                and (status is None or c.status == status)
            ]
        return sorted(corrections, key=lambda c: (c.requested_at, str(c.id)))

    def resolve_correction_if_pending(
        self,
        correction: Correction,
        updated_entry: TimeEntry | None = None,
        delete_entry: bool = False,
    ) -> Correction:
        with self._lock:
            stored = self._corrections.get(correction.id)
            if stored is None:
                raise CorrectionNotFound(correction.id)
            if not stored.is_pending:
                raise CorrectionNotPending(correction.id, stored.status.value)
            self._corrections[correction.id] = correction
            if delete_entry:
                self._entries.pop(correction.entry_id, None)
            elif updated_entry is not None:
                self._entries[updated_entry.id] = updated_entry
            return correction


class InMemorySwapRequestStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._swaps: dict[UUID, SwapRequest] = {}

    def insert_if_no_pending_swap(self, swap: SwapRequest) -> SwapRequest:
        with self._lock:
            claimed = {
                schedule_id
                for s in self._swaps.values()
                if s.status == SwapStatus.PENDING
                for schedule_id in s.schedule_ids
            }
            for schedule_id in swap.schedule_ids:
                if schedule_id in claimed:
                    raise SwapAlreadyPending(schedule_id)
            self._swaps[swap.id] = swap
            return swap

    def get_swap(self, swap_id: UUID) -> SwapRequest | None:
        with self._lock:
            return self._swaps.get(swap_id)

    def list_swaps(
        self,
        employee_id: UUID | None = None,
        status: SwapStatus | None = None,
    ) -> list[SwapRequest]:
        with self._lock:
            swaps = [
                s
                for s in self._swaps.values()
                if (
                    employee_id is None
                    or employee_id in (s.requester_id, s.target_employee_id)
                )
                and (status is None or s.status == status)
            ]
        return sorted(swaps, key=lambda s: (s.created_at, str(s.id)))

    def resolve_swap_if_pending(self, swap: SwapRequest) -> SwapRequest:
        with self._lock:
            stored = self._swaps.get(swap.id)
            if stored is None:
                raise SwapRequestNotFound(swap.id)
            if stored.status != SwapStatus.PENDING:
                raise InvalidTransitionError(
                    stored.status.value, swap.status.value, "swap already resolved"
                )
            self._swaps[swap.id] = swap
            return swap


class InMemoryPayrollStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._periods: dict[UUID, PayrollPeriod] = {}
        self._calculations: dict[UUID, dict[UUID, PayrollCalculation]] = {}
        self._advances: dict[UUID, SalaryAdvance] = {}

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        with self._lock:
            self._periods[period.id] = period
            return period

    def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        with self._lock:
            return self._periods.get(period_id)

    def list_periods(self) -> list[PayrollPeriod]:
        with self._lock:
            periods = list(self._periods.values())
        return sorted(periods, key=lambda p: (p.start_date, str(p.id)), reverse=True)

    def transition_period(
        self, period_id: UUID, from_status: PeriodStatus, to_status: PeriodStatus
    ) -> PayrollPeriod:
        with self._lock:
            stored = self._periods.get(period_id)
            if stored is None:
                raise PayrollPeriodNotFound(period_id)
            if stored.status != from_status:
                raise InvalidTransitionError(
                    stored.status.value,
                    to_status.value,
                    f"expected period to be '{from_status.value}'",
                )
            updated = replace(stored, status=to_status)
            self._periods[period_id] = updated
            return updated

    def replace_calculations(
        self, period_id: UUID, calculations: list[PayrollCalculation]
    ) -> None:
        with self._lock:
            self._calculations[period_id] = {c.employee_id: c for c in calculations}

    def list_calculations(self, period_id: UUID) -> list[PayrollCalculation]:
        with self._lock:
            calcs = list(self._calculations.get(period_id, {}).values())
        return sorted(calcs, key=lambda c: str(c.employee_id))

    def get_calculation(
        self, period_id: UUID, employee_id: UUID
    ) -> PayrollCalculation | None:
        with self._lock:
            return self._calculations.get(period_id, {}).get(employee_id)

    def add_advance(self, advance: SalaryAdvance) -> SalaryAdvance:
        with self._lock:
            self._advances[advance.id] = advance
            return advance

    def get_advance(self, advance_id: UUID) -> SalaryAdvance | None:
        with self._lock:
            return self._advances.get(advance_id)

    def list_advances(
        self,
        employee_id: UUID | None = None,
        status: AdvanceStatus | None = None,
    ) -> list[SalaryAdvance]:
        with self._lock:
            return [
                a
                for a in self._advances.values()
                if (employee_id is None or a.employee_id == employee_id)
                and (status is None or a.status == status)
            ]

    def update_advance_if_status(
        self, advance: SalaryAdvance, expected: AdvanceStatus
    ) -> SalaryAdvance:
        with self._lock:
            stored = self._advances.get(advance.id)
            current = stored.status if stored else None
            if current != expected:
                raise InvalidTransitionError(
                    current.value if current else "missing",
                    advance.status.value,
                    f"expected advance to be '{expected.value}'",
                )
            self._advances[advance.id] = advance
            return advance
