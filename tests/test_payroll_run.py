"""Tests for payroll period runs, payslips and salary advances."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from timeclock_payroll.errors import (
    InvalidTransitionError,
    NotFoundError,
    PayrollPeriodNotFound,
    ValidationError,
)
from timeclock_payroll.events import PayrollPeriodCompleted, PayrollPeriodFailed
from timeclock_payroll.payroll import (
    AdvanceStatus,
    DailyOvertimePolicy,
    DeductionInputs,
    EmployeeInfo,
    EmployeePayrollInput,
    PayrollEngine,
    PayrollRunService,
    PeriodFrequency,
    PeriodStatus,
    RateCard,
)
from timeclock_payroll.payroll.advances import SalaryAdvanceService
from timeclock_payroll.payroll.periods import generate_period
from timeclock_payroll.storage.memory import InMemoryPayrollStore

START = date(2024, 1, 15)
END = date(2024, 1, 21)


@pytest.fixture
def service(payroll_store, entry_store, emitter):
    engine = PayrollEngine(
        classification=DailyOvertimePolicy(Decimal("8")), engine_version="1.0.0"
    )
    return PayrollRunService(payroll_store, entry_store, engine=engine, emitter=emitter)


@pytest.fixture
def period(service):
    return service.create_period(START, END, name="Week 3")


@pytest.fixture
def worked_week(entry_store, make_entry, employee_id):
    """The 10, 10, 9, 8, 3 hour week, stored."""
    entries = [
        make_entry(employee_id, START + timedelta(days=i), hours)
        for i, hours in enumerate(["10", "10", "9", "8", "3"])
    ]
    for entry in entries:
        entry_store.insert_if_no_active_entry(entry)
    return entries


def fixed_deductions(**kwargs):
    return DeductionInputs(tax=Decimal("50"), social_security=Decimal("20"), **kwargs)


class TestCreatePeriod:
    """Registering periods."""

    def test_new_period_is_draft(self, period, service):
        assert period.status == PeriodStatus.DRAFT
        assert service.get_period(period.id) == period

    def test_end_before_start(self, service):
        with pytest.raises(ValidationError):
            service.create_period(END, START)

    def test_from_window(self, service):
        period = service.create_period_from_window(
            generate_period(PeriodFrequency.WEEKLY, date(2024, 1, 17))
        )

        assert period.name == "Weekly (Jan 15 - Jan 21, 2024)"
        assert period.pay_date == date(2024, 1, 28)
        assert period.cutoff_date == date(2024, 1, 25)

    def test_unknown_period(self, service):
        with pytest.raises(PayrollPeriodNotFound):
            service.get_period(uuid4())


class TestRunPeriod:
    """Claiming and calculating a period."""

    def test_run_completes_and_consumes_advances(
        self,
        service,
        period,
        worked_week,
        employee_id,
        payroll_store,
        make_advance,
        events,
    ):
        advance = payroll_store.add_advance(make_advance(employee_id, "100"))

        run = service.run_period(
            period.id,
            [
                EmployeePayrollInput(
                    employee_id, RateCard(regular_rate=Decimal("15")), fixed_deductions()
                )
            ],
        )

        assert run.success is True
        assert run.period.status == PeriodStatus.COMPLETED
        assert run.failures == []
        calc = run.results[0].calculation
        assert calc.net_pay == Decimal("467.50")
        assert calc.advance_ids == (advance.id,)
        assert payroll_store.get_calculation(period.id, employee_id) == calc
        assert payroll_store.get_advance(advance.id).status == AdvanceStatus.PROCESSED

        summary = run.summary
        assert summary.total_employees == 1
        assert summary.total_gross == Decimal("637.50")
        assert summary.total_advances == Decimal("100.00")

        assert isinstance(events[-1], PayrollPeriodCompleted)
        assert events[-1].employee_count == 1
        assert events[-1].failed_count == 0

    def test_completed_period_cannot_run_again(self, service, period, employee_id):
        inputs = [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))]
        service.run_period(period.id, inputs)

        with pytest.raises(InvalidTransitionError):
            service.run_period(period.id, inputs)

    def test_partial_failure_still_completes(
        self, service, period, worked_week, employee_id, other_employee_id
    ):
        run = service.run_period(
            period.id,
            [
                EmployeePayrollInput(
                    employee_id, RateCard(regular_rate=Decimal("15")), fixed_deductions()
                ),
                EmployeePayrollInput(
                    other_employee_id,
                    RateCard(regular_rate=Decimal("15")),
                    DeductionInputs(other=Decimal("10")),
                ),
            ],
        )

        assert run.period.status == PeriodStatus.COMPLETED
        assert len(run.results) == 1
        assert run.failures[0].employee_id == other_employee_id
        assert run.failures[0].code == "DEDUCTIONS_EXCEED_GROSS"

    def test_total_failure_marks_error_and_can_be_reopened(
        self, service, period, employee_id, events, payroll_store
    ):
        failing = [
            EmployeePayrollInput(
                employee_id,
                RateCard(regular_rate=Decimal("15")),
                DeductionInputs(other=Decimal("1")),
            )
        ]

        run = service.run_period(period.id, failing)

        assert run.period.status == PeriodStatus.ERROR
        assert run.success is False
        assert isinstance(events[-1], PayrollPeriodFailed)
        assert payroll_store.list_calculations(period.id) == []

        with pytest.raises(InvalidTransitionError):
            service.run_period(period.id, failing)

        reopened = service.reopen_period(period.id)
        assert reopened.status == PeriodStatus.DRAFT

        rerun = service.run_period(
            period.id,
            [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))],
        )
        assert rerun.period.status == PeriodStatus.COMPLETED

    def test_unexpected_error_marks_error_and_propagates(
        self, payroll_store, entry_store, period, employee_id
    ):
        class BrokenEngine:
            def calculate(self, *args, **kwargs):
                raise RuntimeError("disk on fire")

        service = PayrollRunService(payroll_store, entry_store, engine=BrokenEngine())

        with pytest.raises(RuntimeError):
            service.run_period(
                period.id,
                [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))],
            )

        assert payroll_store.get_period(period.id).status == PeriodStatus.ERROR

    def test_failed_completion_releases_consumed_advances(
        self, entry_store, worked_week, employee_id, make_advance, events
    ):
        class CompletionFailsOnce(InMemoryPayrollStore):
            failed = False

            def transition_period(self, period_id, from_status, to_status):
                if to_status == PeriodStatus.COMPLETED and not self.failed:
                    self.failed = True
                    raise RuntimeError("connection lost")
                return super().transition_period(period_id, from_status, to_status)

        store = CompletionFailsOnce()
        service = PayrollRunService(store, entry_store)
        period = service.create_period(START, END)
        advance = store.add_advance(make_advance(employee_id, "100"))
        inputs = [
            EmployeePayrollInput(
                employee_id, RateCard(regular_rate=Decimal("15")), fixed_deductions()
            )
        ]

        with pytest.raises(RuntimeError):
            service.run_period(period.id, inputs)

        assert store.get_period(period.id).status == PeriodStatus.ERROR
        assert store.get_advance(advance.id).status == AdvanceStatus.APPROVED

        service.reopen_period(period.id)
        run = service.run_period(period.id, inputs)

        calc = run.results[0].calculation
        assert calc.advance_ids == (advance.id,)
        assert calc.net_pay == Decimal("467.50")
        assert store.get_advance(advance.id).status == AdvanceStatus.PROCESSED

    def test_original_error_survives_failed_error_transition(
        self, entry_store, employee_id
    ):
        class EngineDown:
            def calculate(self, *args, **kwargs):
                raise RuntimeError("engine down")

        class NoErrorTransition(InMemoryPayrollStore):
            def transition_period(self, period_id, from_status, to_status):
                if to_status == PeriodStatus.ERROR:
                    raise InvalidTransitionError(from_status.value, to_status.value)
                return super().transition_period(period_id, from_status, to_status)

        store = NoErrorTransition()
        service = PayrollRunService(store, entry_store, engine=EngineDown())
        period = service.create_period(START, END)

        with pytest.raises(RuntimeError, match="engine down"):
            service.run_period(
                period.id,
                [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))],
            )

    def test_reopen_completed_period_rejected(self, service, period, employee_id):
        service.run_period(
            period.id, [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))]
        )

        with pytest.raises(InvalidTransitionError):
            service.reopen_period(period.id)

    def test_explicit_entries_override_store(
        self, service, period, worked_week, make_entry, employee_id
    ):
        run = service.run_period(
            period.id,
            [
                EmployeePayrollInput(
                    employee_id,
                    RateCard(regular_rate=Decimal("10")),
                    DeductionInputs(tax=Decimal("0"), social_security=Decimal("0")),
                    entries=(make_entry(employee_id, START, "4"),),
                )
            ],
        )
        assert run.results[0].calculation.gross_pay == Decimal("40.00")

    def test_preview_writes_nothing(
        self, service, period, worked_week, employee_id, payroll_store
    ):
        result = service.preview(
            period,
            EmployeePayrollInput(
                employee_id, RateCard(regular_rate=Decimal("15")), fixed_deductions()
            ),
        )

        assert result.calculation.gross_pay == Decimal("637.50")
        assert payroll_store.list_calculations(period.id) == []
        assert service.get_period(period.id).status == PeriodStatus.DRAFT


class TestPayslip:
    """Payslips restate stored calculations."""

    def test_payslip_lines(self, service, worked_week, employee_id):
        period = service.create_period(START, END, pay_date=date(2024, 1, 28))
        service.run_period(
            period.id,
            [
                EmployeePayrollInput(
                    employee_id, RateCard(regular_rate=Decimal("15")), fixed_deductions()
                )
            ],
        )

        slip = service.payslip(period.id, EmployeeInfo(employee_id, "Somchai", "E-001"))

        assert slip.pay_date == date(2024, 1, 28)
        assert slip.slip_number.startswith(f"PS-202401-{str(employee_id)[:8].upper()}-")
        assert [line.label for line in slip.earnings] == ["Regular", "Overtime"]
        assert [line.label for line in slip.deductions] == ["Income tax", "Social security"]
        assert slip.net_pay == Decimal("567.50")

        data = slip.to_dict()
        assert data["net_pay"] == "567.50"
        assert data["employee"]["name"] == "Somchai"
        assert data["earnings"][1] == {
            "label": "Overtime",
            "hours": "5.00",
            "rate": "22.50",
            "amount": "112.50",
        }

    def test_slip_number_is_stable(self, service, period, worked_week, employee_id):
        service.run_period(
            period.id, [EmployeePayrollInput(employee_id, RateCard(regular_rate=Decimal("15")))]
        )
        info = EmployeeInfo(employee_id, "Somchai")

        assert (
            service.payslip(period.id, info).slip_number
            == service.payslip(period.id, info).slip_number
        )

    def test_no_calculation_no_payslip(self, service, period, other_employee_id):
        assert service.payslip(period.id, EmployeeInfo(other_employee_id, "Nobody")) is None


class TestSalaryAdvances:
    """Advance eligibility and lifecycle."""

    @pytest.fixture
    def advances(self, payroll_store, clock):
        return SalaryAdvanceService(payroll_store, max_ratio=Decimal("0.5"), clock=clock)

    @pytest.fixture
    def ten_hours(self, make_entry, employee_id):
        return [
            make_entry(employee_id, START, "6"),
            make_entry(employee_id, START + timedelta(days=1), "4"),
            make_entry(employee_id, START + timedelta(days=2), "5", verified=False),
        ]

    def test_eligibility(self, advances, ten_hours, employee_id):
        eligibility = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)

        assert eligibility.hours_worked == Decimal("10.00")
        assert eligibility.gross_earnings == Decimal("1000.00")
        assert eligibility.max_amount == Decimal("500.00")
        assert eligibility.available_amount == Decimal("500.00")
        assert eligibility.eligible is True

    def test_request_beyond_available(self, advances, ten_hours, employee_id):
        eligibility = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)

        with pytest.raises(ValidationError):
            advances.request_advance(employee_id, Decimal("600"), eligibility)

    def test_outstanding_advances_reduce_availability(
        self, advances, ten_hours, employee_id, clock
    ):
        first = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)
        advance = advances.request_advance(employee_id, Decimal("300"), first, "rent")

        assert advance.status == AdvanceStatus.PENDING
        assert advance.requested_at == clock()

        second = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)
        assert second.current_advances == Decimal("300.00")
        assert second.available_amount == Decimal("200.00")

    def test_approve_then_process(self, advances, ten_hours, employee_id, clock):
        eligibility = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)
        advance = advances.request_advance(employee_id, Decimal("200"), eligibility)
        manager = uuid4()

        approved = advances.approve(advance.id, manager)
        assert approved.status == AdvanceStatus.APPROVED
        assert approved.approved_by == manager
        assert approved.approved_at == clock()

        with pytest.raises(InvalidTransitionError):
            advances.reject(advance.id, manager)

        [processed] = advances.mark_processed([advance.id])
        assert processed.status == AdvanceStatus.PROCESSED

        with pytest.raises(InvalidTransitionError):
            advances.mark_processed([advance.id])

    def test_unknown_advance(self, advances):
        with pytest.raises(NotFoundError):
            advances.approve(uuid4(), uuid4())

    def test_non_positive_amount(self, advances, ten_hours, employee_id):
        eligibility = advances.eligibility(employee_id, ten_hours, Decimal("100"), START, END)
        with pytest.raises(ValidationError):
            advances.request_advance(employee_id, Decimal("0"), eligibility)
