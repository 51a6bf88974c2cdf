"""Capability interfaces the core depends on.

Every ``*_if_*`` method is a conditional write: the check and the write
happen atomically, and a failed check raises the named conflict error
instead of writing.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from timeclock_payroll.payroll.types import (
        AdvanceStatus,
        PayrollCalculation,
        PayrollPeriod,
        PeriodStatus,
        SalaryAdvance,
    )
    from timeclock_payroll.scheduling.swaps import SwapRequest, SwapStatus
    from timeclock_payroll.timekeeping.types import (
        Correction,
        CorrectionStatus,
        TimeEntry,
    )


@runtime_checkable
class TimeEntryStore(Protocol):
    """Time entries and their corrections."""

    def insert_if_no_active_entry(self, entry: TimeEntry) -> TimeEntry:
        """Raises ActiveEntryExists if the employee has an open entry."""
        ...

    def complete_entry_if_active(self, entry: TimeEntry) -> TimeEntry:
        """Store a clocked-out entry.

        Raises NoActiveEntry if unknown, AlreadyClockedOut if the stored
        entry was already closed.
        """
        ...

    def get_entry(self, entry_id: UUID) -> TimeEntry | None:
        ...

    def get_active_entry(self, employee_id: UUID) -> TimeEntry | None:
        ...

    def list_entries(
        self,
        employee_id: UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TimeEntry]:
        """Entries ordered by clock-in time, filtered by work date."""
        ...

    def insert_if_no_pending_correction(self, correction: Correction) -> Correction:
        """Raises CorrectionAlreadyPending if the entry already has one."""
        ...

    def get_correction(self, correction_id: UUID) -> Correction | None:
        ...

    def list_corrections(
        self,
        employee_id: UUID | None = None,
        status: CorrectionStatus | None = None,
    ) -> list[Correction]:
        ...

    def resolve_correction_if_pending(
        self,
        correction: Correction,
        updated_entry: TimeEntry | None = None,
        delete_entry: bool = False,
    ) -> Correction:
        """Store a resolved correction and its effect on the entry together.

        Raises CorrectionNotFound, or CorrectionNotPending if the stored
        correction was already resolved.
        """
        ...


@runtime_checkable
class SwapRequestStore(Protocol):
    def insert_if_no_pending_swap(self, swap: SwapRequest) -> SwapRequest:
        """Raises SwapAlreadyPending if either schedule is in a pending swap."""
        ...

    def get_swap(self, swap_id: UUID) -> SwapRequest | None:
        ...

    def list_swaps(
        self,
        employee_id: UUID | None = None,
        status: SwapStatus | None = None,
    ) -> list[SwapRequest]:
        ...

    def resolve_swap_if_pending(self, swap: SwapRequest) -> SwapRequest:
        """Raises SwapRequestNotFound, or InvalidTransitionError if resolved."""
        ...


@runtime_checkable
class PayrollStore(Protocol):
    """Payroll periods, their calculations and salary advances."""

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        ...

    def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        ...

    def list_periods(self) -> list[PayrollPeriod]:
        ...

    def transition_period(
        self, period_id: UUID, from_status: PeriodStatus, to_status: PeriodStatus
    ) -> PayrollPeriod:
        """Move a period from ``from_status`` to ``to_status``.

        Raises PayrollPeriodNotFound, or InvalidTransitionError if the stored
        status is not ``from_status``.
        """
        ...

    def replace_calculations(
        self, period_id: UUID, calculations: list[PayrollCalculation]
    ) -> None:
        ...

    def list_calculations(self, period_id: UUID) -> list[PayrollCalculation]:
        ...

    def get_calculation(
        self, period_id: UUID, employee_id: UUID
    ) -> PayrollCalculation | None:
        ...

    def add_advance(self, advance: SalaryAdvance) -> SalaryAdvance:
        ...

    def get_advance(self, advance_id: UUID) -> SalaryAdvance | None:
        ...

    def list_advances(
        self,
        employee_id: UUID | None = None,
        status: AdvanceStatus | None = None,
    ) -> list[SalaryAdvance]:
        ...

    def update_advance_if_status(
        self, advance: SalaryAdvance, expected: AdvanceStatus
    ) -> SalaryAdvance:
        """Raises InvalidTransitionError if the stored status differs."""
        ...
