"""Payslip and summary derivation.

Both are pure restatements of PayrollCalculation records; no pay is
computed here.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from timeclock_payroll.payroll.types import ZERO, PayrollCalculation, PayrollPeriod


@dataclass(frozen=True)
class EmployeeInfo:
    employee_id: UUID
    name: str
    employee_code: str = ""
    position: str = ""
    branch: str = ""


@dataclass(frozen=True)
class PayslipLine:
    label: str
    hours: Decimal | None
    rate: Decimal | None
    amount: Decimal


@dataclass(frozen=True)
class Payslip:
    slip_number: str
    employee: EmployeeInfo
    period_start: date
    period_end: date
    pay_date: date | None
    earnings: tuple[PayslipLine, ...]
    deductions: tuple[PayslipLine, ...]
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    calculation_id: UUID

    def to_dict(self) -> dict[str, Any]:
        def line(item: PayslipLine) -> dict[str, Any]:
            return {
                "label": item.label,
                "hours": str(item.hours) if item.hours is not None else None,
                "rate": str(item.rate) if item.rate is not None else None,
                "amount": str(item.amount),
            }

        return {
            "slip_number": self.slip_number,
            "employee": {
                "employee_id": str(self.employee.employee_id),
                "name": self.employee.name,
                "employee_code": self.employee.employee_code,
                "position": self.employee.position,
                "branch": self.employee.branch,
            },
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "pay_date": self.pay_date.isoformat() if self.pay_date else None,
            "earnings": [line(e) for e in self.earnings],
            "deductions": [line(d) for d in self.deductions],
            "gross_pay": str(self.gross_pay),
            "total_deductions": str(self.total_deductions),
            "net_pay": str(self.net_pay),
            "calculation_id": str(self.calculation_id),
        }


def slip_number(calculation: PayrollCalculation) -> str:
    """``PS-YYYYMM-<employee>-<suffix>``, stable for a given calculation."""
    suffix = hashlib.sha256(str(calculation.calculation_id).encode()).hexdigest()[:4]
    return (
        f"PS-{calculation.period_end:%Y%m}-"
        f"{str(calculation.employee_id)[:8]}-{suffix}".upper()
    )


def build_payslip(
    calculation: PayrollCalculation,
    employee: EmployeeInfo,
    period: PayrollPeriod | None = None,
) -> Payslip:
    """Restate a calculation as payslip lines.

    The pay date is taken from ``period`` when given.

    Buckets with no hours and deductions of zero are left out.
    """
    earnings = [
        PayslipLine(label, hours, rate, amount)
        for label, hours, rate, amount in (
            (
                "Regular",
                calculation.regular_hours,
                calculation.rates.regular,
                calculation.earnings.regular,
            ),
            (
                "Overtime",
                calculation.overtime_hours,
                calculation.rates.overtime,
                calculation.earnings.overtime,
            ),
            (
                "Holiday",
                calculation.holiday_hours,
                calculation.rates.holiday,
                calculation.earnings.holiday,
            ),
        )
        if hours > 0
    ]
    d = calculation.deductions
    deductions = [
        PayslipLine(label, None, None, amount)
        for label, amount in (
            ("Income tax", d.tax),
            ("Social security", d.social_security),
            ("Salary advances", d.advances),
            ("Other", d.other),
        )
        if amount > 0
    ]
    return Payslip(
        slip_number=slip_number(calculation),
        employee=employee,
        period_start=calculation.period_start,
        period_end=calculation.period_end,
        pay_date=period.pay_date if period else None,
        earnings=tuple(earnings),
        deductions=tuple(deductions),
        gross_pay=calculation.gross_pay,
        total_deductions=calculation.total_deductions,
        net_pay=calculation.net_pay,
        calculation_id=calculation.calculation_id,
    )


@dataclass(frozen=True)
class PayrollSummary:
    total_employees: int = 0
    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_social_security: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_advances: Decimal = ZERO


def summarize(calculations: Iterable[PayrollCalculation]) -> PayrollSummary:
    calcs = list(calculations)
    return PayrollSummary(
        total_employees=len(calcs),
        total_gross=sum((c.gross_pay for c in calcs), ZERO),
        total_net=sum((c.net_pay for c in calcs), ZERO),
        total_deductions=sum((c.total_deductions for c in calcs), ZERO),
        total_social_security=sum((c.deductions.social_security for c in calcs), ZERO),
        total_tax=sum((c.deductions.tax for c in calcs), ZERO),
        total_advances=sum((c.deductions.advances for c in calcs), ZERO),
    )
