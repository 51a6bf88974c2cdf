"""Payroll calculation engine.

Calculation pipeline (stable order per employee):
1) Partition entries: verified, completed, own, inside the period
2) Classify hours into regular / overtime / holiday
3) Price each bucket, gross = sum
4) Deductions: tax, social security, approved advances, other
5) Net = gross - deductions; negative net is an error, never clamped
6) Fingerprint the inputs and derive a deterministic calculation id

The engine is pure: it reads only its arguments, so identical inputs
always give an identical PayrollCalculation.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from timeclock_payroll.config import get_settings
from timeclock_payroll.errors import (
    DeductionsExceedGross,
    InvalidRateCard,
    PayrollCalculationError,
    ValidationError,
)
from timeclock_payroll.payroll.classification import (
    ClassificationPolicy,
    DailyOvertimePolicy,
)
from timeclock_payroll.payroll.deductions import (
    DeductionPolicy,
    StatutoryDeductionPolicy,
)
from timeclock_payroll.payroll.types import (
    ZERO,
    AdvanceStatus,
    CalculationResult,
    DeductionInputs,
    Deductions,
    Earnings,
    ExcludedEntry,
    ExclusionReason,
    PayrollCalculation,
    RateCard,
    SalaryAdvance,
    money,
)
from timeclock_payroll.timekeeping.types import TimeEntry

# Sanity limits on a single calculation
MAX_TOTAL_HOURS = Decimal("400")
MAX_HOURLY_RATE = Decimal("10000")


def applicable_advances(
    advances: Iterable[SalaryAdvance], employee_id: UUID, period_end: date
) -> list[SalaryAdvance]:
    """Approved, unprocessed advances approved on or before the period end."""
    return sorted(
        (
            a
            for a in advances
            if a.employee_id == employee_id
            and a.status == AdvanceStatus.APPROVED
            and a.approved_at is not None
            and a.approved_at.date() <= period_end
        ),
        key=lambda a: str(a.id),
    )


class PayrollEngine:
    """Derives one employee's pay for one period."""

    def __init__(
        self,
        classification: ClassificationPolicy | None = None,
        deduction_policy: DeductionPolicy | None = None,
        engine_version: str | None = None,
    ):
        settings = get_settings()
        self.classification = classification or DailyOvertimePolicy(
            settings.daily_overtime_threshold_hours
        )
        self.deduction_policy = deduction_policy or StatutoryDeductionPolicy()
        self.engine_version = engine_version or settings.engine_version

    def calculate(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        entries: Iterable[TimeEntry],
        rate_card: RateCard,
        deduction_inputs: DeductionInputs | None = None,
    ) -> CalculationResult:
        """Calculate pay for an employee.

        Entries that cannot be paid are returned in ``excluded`` with a
        reason instead of being dropped.

        Raises:
            ValidationError: Period or deduction inputs are malformed
            InvalidRateCard: Rates outside sane limits
            PayrollCalculationError: Hours outside sane limits
            DeductionsExceedGross: Net pay would be negative
        """
        if period_end < period_start:
            raise ValidationError(
                "Period end is before period start",
                period_start=period_start.isoformat(),
                period_end=period_end.isoformat(),
            )
        inputs = deduction_inputs or DeductionInputs()
        self._validate_inputs(rate_card, inputs)

        included, excluded = self._partition(
            employee_id, period_start, period_end, entries
        )

        breakdown = self.classification.classify(included, rate_card.holidays)
        if breakdown.total > MAX_TOTAL_HOURS:
            raise PayrollCalculationError(
                "Total hours seem unreasonably high",
                employee_id=employee_id,
                total_hours=breakdown.total,
            )

        rates = rate_card.rates()
        earnings = Earnings(
            regular=money(breakdown.regular * rates.regular),
            overtime=money(breakdown.overtime * rates.overtime),
            holiday=money(breakdown.holiday * rates.holiday),
        )
        gross = earnings.total

        social_security = (
            money(inputs.social_security)
            if inputs.social_security is not None
            else self.deduction_policy.social_security(gross)
        )
        tax = (
            money(inputs.tax)
            if inputs.tax is not None
            else self.deduction_policy.tax(gross, social_security)
        )
        advances = applicable_advances(inputs.advances, employee_id, period_end)
        deductions = Deductions(
            tax=tax,
            social_security=social_security,
            advances=money(sum((a.amount for a in advances), ZERO)),
            other=money(inputs.other),
        )
        total_deductions = deductions.total

        net = gross - total_deductions
        if net < 0:
            raise DeductionsExceedGross(employee_id, gross, total_deductions)

        inputs_fingerprint = self._compute_inputs_fingerprint(
            employee_id, period_start, period_end, included, rate_card, inputs, advances
        )
        calculation = PayrollCalculation(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            regular_hours=breakdown.regular,
            overtime_hours=breakdown.overtime,
            holiday_hours=breakdown.holiday,
            rates=rates,
            earnings=earnings,
            gross_pay=gross,
            deductions=deductions,
            total_deductions=total_deductions,
            net_pay=net,
            calculation_id=self._generate_calculation_id(
                employee_id, period_start, period_end, inputs_fingerprint
            ),
            inputs_fingerprint=inputs_fingerprint,
            advance_ids=tuple(a.id for a in advances),
        )
        return CalculationResult(
            calculation=calculation,
            included_entry_ids=tuple(e.id for e in included),
            excluded=tuple(excluded),
        )

    def _validate_inputs(self, rate_card: RateCard, inputs: DeductionInputs) -> None:
        if rate_card.regular_rate > MAX_HOURLY_RATE:
            raise InvalidRateCard(
                "Hourly rate seems unreasonably high",
                regular_rate=rate_card.regular_rate,
            )
        for name in ("tax", "social_security", "other"):
            value = getattr(inputs, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} cannot be negative", **{name: value})
        for advance in inputs.advances:
            if advance.amount < 0:
                raise ValidationError(
                    "Salary advances cannot be negative", advance_id=advance.id
                )

    def _partition(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        entries: Iterable[TimeEntry],
    ) -> tuple[list[TimeEntry], list[ExcludedEntry]]:
        included: list[TimeEntry] = []
        excluded: list[ExcludedEntry] = []

        for entry in sorted(entries, key=lambda e: (e.work_date, e.clock_in.time, str(e.id))):
            if entry.employee_id != employee_id:
                reason = ExclusionReason.OTHER_EMPLOYEE
            elif not period_start <= entry.work_date <= period_end:
                reason = ExclusionReason.OUTSIDE_PERIOD
            elif entry.is_active or entry.total_hours is None:
                reason = ExclusionReason.ACTIVE
            elif not entry.verified:
                reason = ExclusionReason.UNVERIFIED
            else:
                included.append(entry)
                continue
            excluded.append(ExcludedEntry(entry.id, reason))

        return included, excluded

    def _compute_inputs_fingerprint(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        entries: list[TimeEntry],
        rate_card: RateCard,
        inputs: DeductionInputs,
        advances: list[SalaryAdvance],
    ) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        data: dict[str, Any] = {
            "employee_id": str(employee_id),
            "period_start": period_start.isoformat(),
            "period_end": period_end.isoformat(),
            "classification": self.classification.name,
            "entries": [
                {
                    "id": str(e.id),
                    "work_date": e.work_date.isoformat(),
                    "total_hours": str(e.total_hours),
                    "holiday": e.holiday,
                }
                for e in entries
            ],
            "rate_card": rate_card.to_canonical_dict(),
            "tax": str(inputs.tax) if inputs.tax is not None else None,
            "social_security": (
                str(inputs.social_security)
                if inputs.social_security is not None
                else None
            ),
            "other": str(inputs.other),
            "advances": [{"id": str(a.id), "amount": str(a.amount)} for a in advances],
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _generate_calculation_id(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": str(employee_id),
            "period_start": period_start.isoformat(),
            "period_end": period_end.isoformat(),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])
