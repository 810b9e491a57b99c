"""PAYG withholding using marginal brackets plus the Medicare levy."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

from au_payroll.calculators.types import TaxBracket
from au_payroll.constants import (
    CENTS,
    MEDICARE_LEVY_RATE,
    MEDICARE_LEVY_THRESHOLD,
    NO_TAX_FREE_THRESHOLD_RATE,
    PERIODS_PER_YEAR,
    TAX_BRACKETS,
    ZERO,
    PayFrequency,
)

RESIDENT_BRACKETS: tuple[TaxBracket, ...] = tuple(
    TaxBracket(min_amount=lower, max_amount=upper, base_tax=base, rate=rate)
    for lower, upper, base, rate in TAX_BRACKETS
)

_TFN_WEIGHTS = (1, 4, 3, 7, 5, 8, 6, 9, 10)


def find_bracket(
    income: Decimal, brackets: tuple[TaxBracket, ...] = RESIDENT_BRACKETS
) -> TaxBracket | None:
    """Return the first bracket with min <= income <= max."""
    for bracket in brackets:
        if bracket.contains(income):
            return bracket
    return None


def calculate_medicare_levy(annual_income: Decimal) -> Decimal:
    """Flat levy on the full income once it exceeds the exemption threshold."""
    if annual_income > MEDICARE_LEVY_THRESHOLD:
        return annual_income * MEDICARE_LEVY_RATE
    return ZERO


def calculate_annual_tax(
    annual_income: Decimal,
    has_tax_free_threshold: bool = True,
) -> Decimal:
    """Calculate annual tax (unrounded) for a taxable income.

    Without the tax-free threshold a flat 47% is applied to the whole income.
    That is a deliberate simplification standing in for the "no tax-free
    threshold" withholding schedule, not a progressive calculation.
    """
    annual_income = Decimal(annual_income)
    if annual_income <= 0:
        return ZERO

    if not has_tax_free_threshold:
        return annual_income * NO_TAX_FREE_THRESHOLD_RATE

    bracket = find_bracket(annual_income)
    if bracket is None:
        return ZERO

    tax = bracket.tax_for(annual_income) + calculate_medicare_levy(annual_income)
    return max(ZERO, tax)


def _periodic_tax(
    gross: Decimal, periods: int, has_tax_free_threshold: bool
) -> Decimal:
    annual_tax = calculate_annual_tax(Decimal(gross) * periods, has_tax_free_threshold)
    return (annual_tax / periods).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_weekly_tax(gross_weekly: Decimal, has_tax_free_threshold: bool = True) -> Decimal:
    return _periodic_tax(gross_weekly, PERIODS_PER_YEAR[PayFrequency.WEEKLY], has_tax_free_threshold)


def calculate_fortnightly_tax(
    gross_fortnightly: Decimal, has_tax_free_threshold: bool = True
) -> Decimal:
    return _periodic_tax(
        gross_fortnightly, PERIODS_PER_YEAR[PayFrequency.FORTNIGHTLY], has_tax_free_threshold
    )


def calculate_monthly_tax(gross_monthly: Decimal, has_tax_free_threshold: bool = True) -> Decimal:
    return _periodic_tax(
        gross_monthly, PERIODS_PER_YEAR[PayFrequency.MONTHLY], has_tax_free_threshold
    )


_PERIOD_CALCULATORS = {
    PayFrequency.WEEKLY: calculate_weekly_tax,
    PayFrequency.FORTNIGHTLY: calculate_fortnightly_tax,
    PayFrequency.MONTHLY: calculate_monthly_tax,
}


def calculate_period_tax(
    gross: Decimal,
    pay_frequency: PayFrequency | str,
    has_tax_free_threshold: bool = True,
) -> Decimal:
    """Withholding for one pay period of the given frequency."""
    calculator = _PERIOD_CALCULATORS[PayFrequency.parse(pay_frequency)]
    return calculator(gross, has_tax_free_threshold)


def validate_tfn(tfn: str) -> bool:
    """Check TFN format and the weighted checksum (sum % 11 == 0)."""
    cleaned = re.sub(r"[\s-]", "", tfn or "")
    if not re.fullmatch(r"\d{9}", cleaned):
        return False
    total = sum(int(digit) * weight for digit, weight in zip(cleaned, _TFN_WEIGHTS))
    return total % 11 == 0


def format_tfn(tfn: str) -> str:
    """Group a TFN for display as 'NNN NNN NNN'."""
    cleaned = re.sub(r"[\s-]", "", tfn or "")
    if len(cleaned) != 9:
        return tfn
    return f"{cleaned[:3]} {cleaned[3:6]} {cleaned[6:]}"
