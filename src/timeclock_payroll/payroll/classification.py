"""Hour classification policies.

A policy splits included entries into regular, overtime and holiday hours.
Whole holiday days go to the holiday bucket; the remaining hours are split
by the overtime rule. The three buckets always sum to the entries' hours.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Protocol, runtime_checkable

from timeclock_payroll.payroll.types import ZERO, HourBreakdown, hours
from timeclock_payroll.timekeeping.types import TimeEntry


@runtime_checkable
class ClassificationPolicy(Protocol):
    name: str

    def classify(
        self, entries: Iterable[TimeEntry], holidays: frozenset[date]
    ) -> HourBreakdown:
        ...


def _daily_totals(
    entries: Iterable[TimeEntry], holidays: frozenset[date]
) -> tuple[dict[date, Decimal], set[date]]:
    """Hours per work date, and which dates are holidays."""
    totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
    holiday_dates: set[date] = set()
    for entry in entries:
        totals[entry.work_date] += entry.total_hours or ZERO
        if entry.holiday or entry.work_date in holidays:
            holiday_dates.add(entry.work_date)
    return dict(totals), holiday_dates


class DailyOvertimePolicy:
    """Hours beyond ``threshold`` on a single work date are overtime."""

    name = "daily"

    def __init__(self, threshold: Decimal = Decimal("8")):
        self.threshold = Decimal(threshold)

    def classify(
        self, entries: Iterable[TimeEntry], holidays: frozenset[date]
    ) -> HourBreakdown:
        totals, holiday_dates = _daily_totals(entries, holidays)
        regular = overtime = holiday = ZERO

        for day, total in totals.items():
            if day in holiday_dates:
                holiday += total
            else:
                regular += min(total, self.threshold)
                overtime += max(ZERO, total - self.threshold)

        return HourBreakdown(hours(regular), hours(overtime), hours(holiday))


class WeeklyOvertimePolicy:
    """Hours beyond ``threshold`` within a Monday-to-Sunday week are overtime.

    Days are consumed in date order, so the overtime falls on the last days
    worked in the week.
    """

    name = "weekly"

    def __init__(self, threshold: Decimal = Decimal("40")):
        self.threshold = Decimal(threshold)

    def classify(
        self, entries: Iterable[TimeEntry], holidays: frozenset[date]
    ) -> HourBreakdown:
        totals, holiday_dates = _daily_totals(entries, holidays)
        regular = overtime = holiday = ZERO
        week_hours: dict[date, Decimal] = defaultdict(lambda: ZERO)

        for day in sorted(totals):
            total = totals[day]
            if day in holiday_dates:
                holiday += total
                continue

            week_start = day - timedelta(days=day.weekday())
            room = max(ZERO, self.threshold - week_hours[week_start])
            day_regular = min(total, room)
            regular += day_regular
            overtime += total - day_regular
            week_hours[week_start] += total

        return HourBreakdown(hours(regular), hours(overtime), hours(holiday))
