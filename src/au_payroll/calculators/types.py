"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from au_payroll.constants import DEFAULT_SUPER_RATE, ZERO, PayFrequency


@dataclass(frozen=True)
class TaxBracket:
    """Marginal tax bracket.

    Income in (min_amount, max_amount] is taxed at base_tax plus rate on the
    excess over min_amount.
    """

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    base_tax: Decimal
    rate: Decimal

    def contains(self, income: Decimal) -> bool:
        if income < self.min_amount:
            return False
        return self.max_amount is None or income <= self.max_amount

    def tax_for(self, income: Decimal) -> Decimal:
        return self.base_tax + (income - self.min_amount) * self.rate


@dataclass(frozen=True)
class PayrollCalculationInput:
    """Inputs for one employee's pay calculation."""

    gross_pay: Decimal
    pay_frequency: PayFrequency
    has_tax_free_threshold: bool = True
    super_rate: Decimal = DEFAULT_SUPER_RATE  # percent
    is_contractor: bool = False


@dataclass(frozen=True)
class PayrollCalculationResult:
    """Per-employee pay figures for one period."""

    gross: Decimal
    tax: Decimal
    super_amount: Decimal
    net: Decimal
    total_cost: Decimal  # gross + super


@dataclass(frozen=True)
class YTDTotals:
    """Year-to-date totals for one employee."""

    gross: Decimal = ZERO
    tax: Decimal = ZERO
    super_amount: Decimal = ZERO

    def __add__(self, other: YTDTotals) -> YTDTotals:
        return YTDTotals(
            gross=self.gross + other.gross,
            tax=self.tax + other.tax,
            super_amount=self.super_amount + other.super_amount,
        )
