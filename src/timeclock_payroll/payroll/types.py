"""Type definitions for the payroll pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from timeclock_payroll.errors import InvalidRateCard

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def hours(value: Decimal) -> Decimal:
    """Round hours to 2 places, half-up."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class PeriodStatus(str, Enum):
    """Payroll period status values."""

    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class PeriodFrequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class PayrollPeriod:
    id: UUID
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.DRAFT
    name: str = ""
    cutoff_date: date | None = None
    pay_date: date | None = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class AdvanceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"


@dataclass(frozen=True)
class SalaryAdvance:
    """An employee's request to be paid part of their earnings early.

    Only APPROVED advances are deducted; once a period run has consumed an
    advance the caller marks it PROCESSED so it is never deducted twice.
    """

    id: UUID
    employee_id: UUID
    amount: Decimal
    status: AdvanceStatus = AdvanceStatus.PENDING
    reason: str = ""
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None


@dataclass(frozen=True)
class RateCard:
    """Hourly rates for one employee.

    Overtime and holiday rates default to the regular rate times the
    configured multipliers. ``holidays`` is the holiday calendar; any work
    date in it is paid entirely at the holiday rate.
    """

    regular_rate: Decimal
    overtime_rate: Decimal | None = None
    holiday_rate: Decimal | None = None
    holidays: frozenset[date] = field(default_factory=frozenset)
    overtime_multiplier: Decimal = Decimal("1.5")
    holiday_multiplier: Decimal = Decimal("2.0")

    def __post_init__(self) -> None:
        if self.regular_rate <= 0:
            raise InvalidRateCard(
                "Hourly rate must be greater than 0", regular_rate=self.regular_rate
            )
        for name in ("overtime_rate", "holiday_rate"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidRateCard(f"{name} cannot be negative", **{name: value})

    def rates(self) -> Rates:
        return Rates(
            regular=money(self.regular_rate),
            overtime=money(
                self.overtime_rate
                if self.overtime_rate is not None
                else self.regular_rate * self.overtime_multiplier
            ),
            holiday=money(
                self.holiday_rate
                if self.holiday_rate is not None
                else self.regular_rate * self.holiday_multiplier
            ),
        )

    def to_canonical_dict(self) -> dict[str, Any]:
        rates = self.rates()
        return {
            "regular": str(rates.regular),
            "overtime": str(rates.overtime),
            "holiday": str(rates.holiday),
            "holidays": sorted(d.isoformat() for d in self.holidays),
        }


@dataclass(frozen=True)
class DeductionInputs:
    """Deduction inputs for one employee and period.

    ``tax`` and ``social_security`` left as ``None`` are computed by the
    engine's DeductionPolicy. ``advances`` may contain any advances for the
    employee; the engine picks the ones that apply.
    """

    tax: Decimal | None = None
    social_security: Decimal | None = None
    advances: tuple[SalaryAdvance, ...] = ()
    other: Decimal = ZERO


@dataclass(frozen=True)
class HourBreakdown:
    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    holiday: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.holiday


@dataclass(frozen=True)
class Rates:
    regular: Decimal
    overtime: Decimal
    holiday: Decimal


@dataclass(frozen=True)
class Earnings:
    regular: Decimal
    overtime: Decimal
    holiday: Decimal

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.holiday


@dataclass(frozen=True)
class Deductions:
    tax: Decimal = ZERO
    social_security: Decimal = ZERO
    advances: Decimal = ZERO
    other: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.tax + self.social_security + self.advances + self.other


@dataclass(frozen=True)
class PayrollCalculation:
    """Derived pay for one employee and period. Never hand-edited."""

    employee_id: UUID
    period_start: date
    period_end: date
    regular_hours: Decimal
    overtime_hours: Decimal
    holiday_hours: Decimal
    rates: Rates
    earnings: Earnings
    gross_pay: Decimal
    deductions: Deductions
    total_deductions: Decimal
    net_pay: Decimal
    calculation_id: UUID
    inputs_fingerprint: str
    advance_ids: tuple[UUID, ...] = ()

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours + self.holiday_hours


class ExclusionReason(str, Enum):
    UNVERIFIED = "unverified"
    ACTIVE = "active"
    OUTSIDE_PERIOD = "outside_period"
    OTHER_EMPLOYEE = "other_employee"


@dataclass(frozen=True)
class ExcludedEntry:
    """An entry left out of a calculation, for follow-up by the caller."""

    entry_id: UUID
    reason: ExclusionReason


@dataclass(frozen=True)
class CalculationResult:
    calculation: PayrollCalculation
    included_entry_ids: tuple[UUID, ...]
    excluded: tuple[ExcludedEntry, ...] = ()

    @property
    def has_exclusions(self) -> bool:
        return len(self.excluded) > 0
