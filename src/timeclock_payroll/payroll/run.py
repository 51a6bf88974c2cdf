"""Payroll period run service - orchestrates a period's calculations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from timeclock_payroll.errors import PayrollPeriodNotFound, TimeclockError, ValidationError
from timeclock_payroll.events import (
    EventEmitter,
    EventMetadata,
    PayrollPeriodCompleted,
    PayrollPeriodFailed,
)
from timeclock_payroll.payroll.advances import SalaryAdvanceService
from timeclock_payroll.payroll.engine import PayrollEngine
from timeclock_payroll.payroll.payslip import (
    EmployeeInfo,
    Payslip,
    PayrollSummary,
    build_payslip,
    summarize,
)
from timeclock_payroll.payroll.periods import PeriodWindow, ensure_valid_period
from timeclock_payroll.payroll.state_machine import PayrollPeriodStateMachine
from timeclock_payroll.payroll.types import (
    AdvanceStatus,
    CalculationResult,
    DeductionInputs,
    PayrollPeriod,
    PeriodStatus,
    RateCard,
)
from timeclock_payroll.timekeeping.types import TimeEntry

if TYPE_CHECKING:
    from timeclock_payroll.storage.protocols import PayrollStore, TimeEntryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeePayrollInput:
    """What a period run needs for one employee.

    When ``entries`` is ``None`` they are read from the time entry store.
    Approved advances on file are added to ``deductions.advances``.
    """

    employee_id: UUID
    rate_card: RateCard
    deductions: DeductionInputs = field(default_factory=DeductionInputs)
    entries: tuple[TimeEntry, ...] | None = None


@dataclass(frozen=True)
class EmployeeFailure:
    employee_id: UUID
    code: str
    message: str


@dataclass
class PeriodRunResult:
    period: PayrollPeriod
    results: list[CalculationResult] = field(default_factory=list)
    failures: list[EmployeeFailure] = field(default_factory=list)

    @property
    def summary(self) -> PayrollSummary:
        return summarize(r.calculation for r in self.results)

    @property
    def success(self) -> bool:
        return self.period.status == PeriodStatus.COMPLETED


class PayrollRunService:
    """Service for managing payroll period lifecycle.

    Operations:
    - create_period: Register a DRAFT period
    - preview: Dry-run one employee's calculation without writing anything
    - run_period: Claim the period and calculate every employee
    - reopen_period: Transition error → draft for a re-run
    - payslip: Restate a stored calculation as a payslip
    """

    def __init__(
        self,
        store: PayrollStore,
        entries: TimeEntryStore | None = None,
        engine: PayrollEngine | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.store = store
        self.entries = entries
        self.engine = engine or PayrollEngine()
        self.emitter = emitter or EventEmitter()
        self.advances = SalaryAdvanceService(store)

    def get_period(self, period_id: UUID) -> PayrollPeriod:
        period = self.store.get_period(period_id)
        if period is None:
            raise PayrollPeriodNotFound(period_id)
        return period

    def create_period(
        self,
        start_date: date,
        end_date: date,
        name: str = "",
        pay_date: date | None = None,
        cutoff_date: date | None = None,
    ) -> PayrollPeriod:
        if end_date < start_date:
            raise ValidationError(
                "Period start date must be before period end date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        period = self.store.add_period(
            PayrollPeriod(
                id=uuid4(),
                start_date=start_date,
                end_date=end_date,
                name=name,
                pay_date=pay_date,
                cutoff_date=cutoff_date,
            )
        )
        logger.info("Payroll period %s created (%s to %s)", period.id, start_date, end_date)
        return period

    def create_period_from_window(self, window: PeriodWindow) -> PayrollPeriod:
        ensure_valid_period(window)
        return self.create_period(
            window.start_date,
            window.end_date,
            name=window.description,
            pay_date=window.pay_date,
            cutoff_date=window.cutoff_date,
        )

    def _entries_for(
        self, payroll_input: EmployeePayrollInput, period: PayrollPeriod
    ) -> tuple[TimeEntry, ...]:
        if payroll_input.entries is not None:
            return payroll_input.entries
        if self.entries is None:
            return ()
        return tuple(
            self.entries.list_entries(
                payroll_input.employee_id, period.start_date, period.end_date
            )
        )

    def _deductions_for(self, payroll_input: EmployeePayrollInput) -> DeductionInputs:
        given = payroll_input.deductions
        known = {a.id for a in given.advances}
        on_file = [
            a
            for a in self.store.list_advances(
                payroll_input.employee_id, AdvanceStatus.APPROVED
            )
            if a.id not in known
        ]
        if not on_file:
            return given
        return replace(given, advances=given.advances + tuple(on_file))

    def preview(
        self, period: PayrollPeriod, payroll_input: EmployeePayrollInput
    ) -> CalculationResult:
        """Calculate without persisting. Safe to call at any time."""
        return self.engine.calculate(
            payroll_input.employee_id,
            period.start_date,
            period.end_date,
            self._entries_for(payroll_input, period),
            payroll_input.rate_card,
            self._deductions_for(payroll_input),
        )

    def run_period(
        self,
        period_id: UUID,
        inputs: list[EmployeePayrollInput],
        actor_id: UUID | None = None,
    ) -> PeriodRunResult:
        """Calculate and persist every employee's pay for a period.

        Per-employee derivation errors are collected, not raised. The period
        ends COMPLETED unless every employee failed or something unexpected
        went wrong, in which case it ends ERROR.

        Raises:
            PayrollPeriodNotFound: Unknown period
            InvalidTransitionError: The period is not DRAFT (already running,
                completed, or in error and not reopened)
        """
        period = self.get_period(period_id)
        PayrollPeriodStateMachine.validate_transition(period.status, PeriodStatus.PROCESSING)
        period = self.store.transition_period(
            period_id, PeriodStatus.DRAFT, PeriodStatus.PROCESSING
        )
        logger.info("Payroll period %s claimed for processing", period_id)

        run = PeriodRunResult(period=period)
        processed: list[UUID] = []
        try:
            for payroll_input in inputs:
                try:
                    run.results.append(self.preview(period, payroll_input))
                except TimeclockError as e:
                    logger.warning(
                        "Payroll failed for employee %s in period %s: %s",
                        payroll_input.employee_id,
                        period_id,
                        e,
                    )
                    run.failures.append(
                        EmployeeFailure(payroll_input.employee_id, e.code, str(e))
                    )

            all_failed = bool(inputs) and len(run.failures) == len(inputs)
            if not all_failed:
                self.store.replace_calculations(
                    period_id, [r.calculation for r in run.results]
                )
                for advance_id in self._consumed_advances(run):
                    self.advances.mark_processed([advance_id])
                    processed.append(advance_id)
                run.period = self.store.transition_period(
                    period_id, PeriodStatus.PROCESSING, PeriodStatus.COMPLETED
                )
        except Exception as e:
            logger.exception("Payroll run for period %s failed", period_id)
            self._abandon(period_id, str(e), actor_id, processed)
            raise

        if all_failed:
            run.period = self._fail(period_id, "All employee calculations failed", actor_id)
            return run

        summary = run.summary
        logger.info(
            "Payroll period %s completed: %d calculated, %d failed",
            period_id,
            len(run.results),
            len(run.failures),
        )
        self.emitter.emit(
            PayrollPeriodCompleted(
                metadata=EventMetadata.create(actor_id=actor_id, source_service="payroll"),
                period_id=period_id,
                employee_count=summary.total_employees,
                failed_count=len(run.failures),
                total_gross=summary.total_gross,
                total_net=summary.total_net,
            )
        )
        return run

    def _consumed_advances(self, run: PeriodRunResult) -> list[UUID]:
        return [
            advance_id
            for r in run.results
            for advance_id in r.calculation.advance_ids
            if self.store.get_advance(advance_id) is not None
        ]

    def _abandon(
        self, period_id: UUID, error: str, actor_id: UUID | None, processed: list[UUID]
    ) -> None:
        """Put consumed advances back and move the period to ERROR.

        Errors here are logged only; the caller re-raises the run's own error.
        """
        try:
            self.advances.release(processed)
        except Exception:
            logger.exception("Could not release advances consumed by period %s", period_id)
        try:
            self._fail(period_id, error, actor_id)
        except Exception:
            logger.exception("Could not mark payroll period %s as failed", period_id)

    def _fail(self, period_id: UUID, error: str, actor_id: UUID | None) -> PayrollPeriod:
        period = self.store.transition_period(
            period_id, PeriodStatus.PROCESSING, PeriodStatus.ERROR
        )
        self.emitter.emit(
            PayrollPeriodFailed(
                metadata=EventMetadata.create(actor_id=actor_id, source_service="payroll"),
                period_id=period_id,
                error=error,
            )
        )
        return period

    def reopen_period(self, period_id: UUID) -> PayrollPeriod:
        period = self.get_period(period_id)
        PayrollPeriodStateMachine.validate_transition(period.status, PeriodStatus.DRAFT)
        logger.info("Payroll period %s reopened", period_id)
        return self.store.transition_period(period_id, PeriodStatus.ERROR, PeriodStatus.DRAFT)

    def payslip(
        self, period_id: UUID, employee: EmployeeInfo
    ) -> Payslip | None:
        period = self.get_period(period_id)
        calculation = self.store.get_calculation(period_id, employee.employee_id)
        if calculation is None:
            return None
        return build_payslip(calculation, employee, period)
