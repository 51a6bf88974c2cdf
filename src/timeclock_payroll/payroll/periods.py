"""Payroll period date arithmetic.

Weekly and bi-weekly periods start on Monday; monthly periods cover a
calendar month. The pay date falls ``pay_days`` after the period end and
the cutoff ``cutoff_days`` before the pay date.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from timeclock_payroll.errors import ValidationError
from timeclock_payroll.payroll.types import PeriodFrequency

DEFAULT_CUTOFF_DAYS = 3
DEFAULT_PAY_DAYS = 7


@dataclass(frozen=True)
class PeriodWindow:
    frequency: PeriodFrequency
    start_date: date
    end_date: date
    cutoff_date: date
    pay_date: date

    @property
    def key(self) -> str:
        """Stable identifier, e.g. ``weekly-2024-01-15-2024-01-21``."""
        return f"{self.frequency.value}-{self.start_date}-{self.end_date}"

    @property
    def description(self) -> str:
        if self.frequency == PeriodFrequency.MONTHLY:
            return f"Monthly ({self.start_date:%B %Y})"
        label = "Weekly" if self.frequency == PeriodFrequency.WEEKLY else "Bi-weekly"
        start, end = self.start_date, self.end_date
        return f"{label} ({start:%b} {start.day} - {end:%b} {end.day}, {end.year})"

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def generate_period(
    frequency: PeriodFrequency,
    start: date,
    cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    pay_days: int = DEFAULT_PAY_DAYS,
) -> PeriodWindow:
    """Build the period of ``frequency`` that contains ``start``."""
    frequency = PeriodFrequency(frequency)
    if frequency == PeriodFrequency.MONTHLY:
        period_start = start.replace(day=1)
        period_end = start.replace(day=calendar.monthrange(start.year, start.month)[1])
    else:
        period_start = start - timedelta(days=start.weekday())
        weeks = 1 if frequency == PeriodFrequency.WEEKLY else 2
        period_end = period_start + timedelta(weeks=weeks, days=-1)

    pay_date = period_end + timedelta(days=pay_days)
    return PeriodWindow(
        frequency=frequency,
        start_date=period_start,
        end_date=period_end,
        cutoff_date=pay_date - timedelta(days=cutoff_days),
        pay_date=pay_date,
    )


def _shift(window: PeriodWindow, steps: int, cutoff_days: int, pay_days: int) -> PeriodWindow:
    if window.frequency == PeriodFrequency.MONTHLY:
        start = _add_months(window.start_date, steps)
    elif window.frequency == PeriodFrequency.WEEKLY:
        start = window.start_date + timedelta(weeks=steps)
    else:
        start = window.start_date + timedelta(weeks=2 * steps)
    return generate_period(window.frequency, start, cutoff_days, pay_days)


def next_period(
    window: PeriodWindow,
    cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    pay_days: int = DEFAULT_PAY_DAYS,
) -> PeriodWindow:
    return _shift(window, 1, cutoff_days, pay_days)


def previous_period(
    window: PeriodWindow,
    cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    pay_days: int = DEFAULT_PAY_DAYS,
) -> PeriodWindow:
    return _shift(window, -1, cutoff_days, pay_days)


def periods_for_year(
    year: int,
    frequency: PeriodFrequency,
    cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    pay_days: int = DEFAULT_PAY_DAYS,
) -> list[PeriodWindow]:
    """All consecutive periods that start within ``year``.

    The first weekly or bi-weekly period is the one containing January 1st,
    so it may start in the previous year.
    """
    periods = [generate_period(frequency, date(year, 1, 1), cutoff_days, pay_days)]
    while True:
        following = next_period(periods[-1], cutoff_days, pay_days)
        if following.start_date.year != year:
            return periods
        periods.append(following)


def period_for_date(day: date, periods: Iterable[PeriodWindow]) -> PeriodWindow | None:
    for window in periods:
        if window.contains(day):
            return window
    return None


def validate_period(window: PeriodWindow) -> list[str]:
    """Returns list of error messages (empty if valid)."""
    errors: list[str] = []
    if window.start_date > window.end_date:
        errors.append("Period start date must be before period end date")
    if window.cutoff_date > window.pay_date:
        errors.append("Cutoff date must be before pay date")
    if window.cutoff_date < window.end_date:
        errors.append("Cutoff date should be after period end date")
    return errors


def ensure_valid_period(window: PeriodWindow) -> PeriodWindow:
    errors = validate_period(window)
    if errors:
        raise ValidationError("; ".join(errors), period=window.key)
    return window


def can_process(window: PeriodWindow, today: date) -> bool:
    """Payroll may run once the cutoff date has been reached."""
    return today >= window.cutoff_date
