"""Employer superannuation guarantee contributions."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from au_payroll.constants import CENTS, DEFAULT_SUPER_RATE

if TYPE_CHECKING:
    from au_payroll.models import Employee, Organisation


def calculate_super(gross_amount: Decimal, super_rate: Decimal = DEFAULT_SUPER_RATE) -> Decimal:
    """Contribution = gross x rate, where rate is a percentage (11.5 = 11.5%).

    Negative gross gives a negative contribution; callers guard their inputs.
    """
    amount = Decimal(gross_amount) * Decimal(super_rate) / 100
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def resolve_super_rate(
    employee: Employee,
    organisation: Organisation | None = None,
) -> Decimal:
    """Employee rate, then the organisation default, then the statutory default."""
    if employee.super_rate is not None:
        return Decimal(employee.super_rate)
    if organisation is not None and organisation.default_super_rate is not None:
        return Decimal(organisation.default_super_rate)
    return DEFAULT_SUPER_RATE
