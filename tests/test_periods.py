"""Tests for payroll period date arithmetic."""

from datetime import date

import pytest

from timeclock_payroll.errors import ValidationError
from timeclock_payroll.payroll import PeriodFrequency
from timeclock_payroll.payroll.periods import (
    PeriodWindow,
    can_process,
    ensure_valid_period,
    generate_period,
    next_period,
    period_for_date,
    periods_for_year,
    previous_period,
    validate_period,
)


class TestGeneratePeriod:
    """Period containing a given date."""

    def test_weekly_starts_on_monday(self):
        window = generate_period(PeriodFrequency.WEEKLY, date(2024, 1, 17))

        assert window.start_date == date(2024, 1, 15)
        assert window.end_date == date(2024, 1, 21)
        assert window.pay_date == date(2024, 1, 28)
        assert window.cutoff_date == date(2024, 1, 25)

    def test_bi_weekly(self):
        window = generate_period(PeriodFrequency.BI_WEEKLY, date(2024, 1, 17))

        assert window.start_date == date(2024, 1, 15)
        assert window.end_date == date(2024, 1, 28)

    def test_monthly_leap_february(self):
        window = generate_period(PeriodFrequency.MONTHLY, date(2024, 2, 10))

        assert window.start_date == date(2024, 2, 1)
        assert window.end_date == date(2024, 2, 29)
        assert window.pay_date == date(2024, 3, 7)
        assert window.cutoff_date == date(2024, 3, 4)

    def test_accepts_string_frequency(self):
        window = generate_period("monthly", date(2023, 2, 10))
        assert window.end_date == date(2023, 2, 28)

    def test_custom_offsets(self):
        window = generate_period(
            PeriodFrequency.WEEKLY, date(2024, 1, 15), cutoff_days=1, pay_days=3
        )
        assert window.pay_date == date(2024, 1, 24)
        assert window.cutoff_date == date(2024, 1, 23)

    def test_description_and_key(self):
        weekly = generate_period(PeriodFrequency.WEEKLY, date(2024, 1, 17))
        monthly = generate_period(PeriodFrequency.MONTHLY, date(2024, 1, 17))

        assert weekly.description == "Weekly (Jan 15 - Jan 21, 2024)"
        assert weekly.key == "weekly-2024-01-15-2024-01-21"
        assert monthly.description == "Monthly (January 2024)"


class TestNavigation:
    """Moving between consecutive periods."""

    def test_next_weekly(self):
        window = next_period(generate_period(PeriodFrequency.WEEKLY, date(2024, 1, 15)))
        assert window.start_date == date(2024, 1, 22)

    def test_previous_monthly_crosses_year(self):
        window = previous_period(generate_period(PeriodFrequency.MONTHLY, date(2024, 1, 15)))

        assert window.start_date == date(2023, 12, 1)
        assert window.end_date == date(2023, 12, 31)

    def test_next_monthly_from_january_end(self):
        window = next_period(generate_period(PeriodFrequency.MONTHLY, date(2024, 1, 31)))
        assert window.end_date == date(2024, 2, 29)

    @pytest.mark.parametrize(
        "frequency,count",
        [
            (PeriodFrequency.MONTHLY, 12),
            (PeriodFrequency.WEEKLY, 53),
            (PeriodFrequency.BI_WEEKLY, 27),
        ],
    )
    def test_periods_for_year(self, frequency, count):
        """2024 starts on a Monday, so weekly periods start Jan 1 through Dec 30."""
        periods = periods_for_year(2024, frequency)

        assert len(periods) == count
        assert periods[0].start_date == date(2024, 1, 1)
        for earlier, later in zip(periods, periods[1:]):
            assert (later.start_date - earlier.end_date).days == 1

    def test_period_for_date(self):
        periods = periods_for_year(2024, PeriodFrequency.MONTHLY)

        assert period_for_date(date(2024, 7, 4), periods).start_date == date(2024, 7, 1)
        assert period_for_date(date(2025, 1, 1), periods) is None


class TestValidation:
    """Period sanity checks."""

    def window(self, **overrides):
        values = dict(
            frequency=PeriodFrequency.WEEKLY,
            start_date=date(2024, 1, 15),
            end_date=date(2024, 1, 21),
            cutoff_date=date(2024, 1, 25),
            pay_date=date(2024, 1, 28),
        )
        values.update(overrides)
        return PeriodWindow(**values)

    def test_generated_periods_are_valid(self):
        for window in periods_for_year(2024, PeriodFrequency.WEEKLY):
            assert validate_period(window) == []

    def test_start_after_end(self):
        errors = validate_period(self.window(start_date=date(2024, 1, 22)))
        assert errors == ["Period start date must be before period end date"]

    def test_cutoff_after_pay_date(self):
        errors = validate_period(self.window(cutoff_date=date(2024, 1, 29)))
        assert errors == ["Cutoff date must be before pay date"]

    def test_cutoff_before_end(self):
        errors = validate_period(self.window(cutoff_date=date(2024, 1, 20)))
        assert errors == ["Cutoff date should be after period end date"]

    def test_ensure_valid_period_raises(self):
        with pytest.raises(ValidationError):
            ensure_valid_period(self.window(cutoff_date=date(2024, 1, 20)))

    def test_can_process_from_cutoff(self):
        window = self.window()

        assert can_process(window, date(2024, 1, 24)) is False
        assert can_process(window, date(2024, 1, 25)) is True
        assert can_process(window, date(2024, 2, 1)) is True
