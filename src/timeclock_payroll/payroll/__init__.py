"""Payroll calculation, periods and payslips."""

from timeclock_payroll.payroll.classification import (
    ClassificationPolicy,
    DailyOvertimePolicy,
    WeeklyOvertimePolicy,
)
from timeclock_payroll.payroll.deductions import (
    DeductionPolicy,
    StatutoryDeductionPolicy,
    TaxBracket,
    progressive_tax,
)
from timeclock_payroll.payroll.engine import PayrollEngine
from timeclock_payroll.payroll.payslip import (
    EmployeeInfo,
    Payslip,
    PayrollSummary,
    build_payslip,
    summarize,
)
from timeclock_payroll.payroll.run import (
    EmployeeFailure,
    EmployeePayrollInput,
    PayrollRunService,
    PeriodRunResult,
)
from timeclock_payroll.payroll.state_machine import PayrollPeriodStateMachine
from timeclock_payroll.payroll.types import (
    AdvanceStatus,
    CalculationResult,
    DeductionInputs,
    ExcludedEntry,
    ExclusionReason,
    PayrollCalculation,
    PayrollPeriod,
    PeriodFrequency,
    PeriodStatus,
    RateCard,
    SalaryAdvance,
)

__all__ = [
    "AdvanceStatus",
    "CalculationResult",
    "ClassificationPolicy",
    "DailyOvertimePolicy",
    "DeductionInputs",
    "DeductionPolicy",
    "EmployeeFailure",
    "EmployeeInfo",
    "EmployeePayrollInput",
    "ExcludedEntry",
    "ExclusionReason",
    "PayrollCalculation",
    "PayrollEngine",
    "PayrollPeriod",
    "PayrollPeriodStateMachine",
    "PayrollRunService",
    "PayrollSummary",
    "Payslip",
    "PeriodFrequency",
    "PeriodRunResult",
    "PeriodStatus",
    "RateCard",
    "SalaryAdvance",
    "StatutoryDeductionPolicy",
    "TaxBracket",
    "WeeklyOvertimePolicy",
    "build_payslip",
    "progressive_tax",
    "summarize",
]
