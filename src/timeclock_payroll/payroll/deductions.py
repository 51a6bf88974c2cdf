"""Statutory deduction policy: social security and withholding tax."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from timeclock_payroll.payroll.types import ZERO, money


@dataclass(frozen=True)
class TaxBracket:
    """Tax bracket for progressive taxation."""

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal  # As decimal, e.g., 0.05 for 5%


# Annual personal income tax brackets
DEFAULT_TAX_BRACKETS: tuple[TaxBracket, ...] = (
    TaxBracket(Decimal("0"), Decimal("150000"), Decimal("0")),
    TaxBracket(Decimal("150000"), Decimal("300000"), Decimal("0.05")),
    TaxBracket(Decimal("300000"), Decimal("500000"), Decimal("0.10")),
    TaxBracket(Decimal("500000"), Decimal("750000"), Decimal("0.15")),
    TaxBracket(Decimal("750000"), Decimal("1000000"), Decimal("0.20")),
    TaxBracket(Decimal("1000000"), Decimal("2000000"), Decimal("0.25")),
    TaxBracket(Decimal("2000000"), Decimal("5000000"), Decimal("0.30")),
    TaxBracket(Decimal("5000000"), None, Decimal("0.35")),
)


@runtime_checkable
class DeductionPolicy(Protocol):
    def social_security(self, gross: Decimal) -> Decimal:
        ...

    def tax(self, gross: Decimal, social_security: Decimal) -> Decimal:
        ...


class StatutoryDeductionPolicy:
    """Social security at a capped flat rate, plus annualized progressive tax.

    Tax treats ``gross`` as one month's pay: it is annualized (x12), reduced
    by a year of social security and the personal exemption, run through the
    brackets, and the annual tax divided back by 12.
    """

    def __init__(
        self,
        social_security_rate: Decimal = Decimal("0.05"),
        social_security_cap: Decimal = Decimal("750"),
        annual_exemption: Decimal = Decimal("60000"),
        brackets: tuple[TaxBracket, ...] = DEFAULT_TAX_BRACKETS,
        periods_per_year: int = 12,
    ):
        self.social_security_rate = social_security_rate
        self.social_security_cap = social_security_cap
        self.annual_exemption = annual_exemption
        self.brackets = brackets
        self.periods_per_year = periods_per_year

    def social_security(self, gross: Decimal) -> Decimal:
        if gross <= 0:
            return ZERO
        return money(min(gross * self.social_security_rate, self.social_security_cap))

    def tax(self, gross: Decimal, social_security: Decimal) -> Decimal:
        n = self.periods_per_year
        taxable = gross * n - social_security * n - self.annual_exemption
        return money(progressive_tax(taxable, self.brackets) / n)


def progressive_tax(income: Decimal, brackets: tuple[TaxBracket, ...]) -> Decimal:
    """Tax on ``income`` using progressive brackets (unrounded)."""
    if income <= 0:
        return ZERO

    total_tax = ZERO
    remaining = income

    for bracket in sorted(brackets, key=lambda b: b.min_amount):
        if remaining <= 0:
            break
        width = (
            bracket.max_amount - bracket.min_amount
            if bracket.max_amount is not None
            else remaining
        )
        taxable_in_bracket = min(remaining, width)
        total_tax += taxable_in_bracket * bracket.rate
        remaining -= taxable_in_bracket

    return total_tax
