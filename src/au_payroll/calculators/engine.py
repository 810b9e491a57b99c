"""Payroll calculation orchestrator.

Calculation pipeline (per employee, per period):
1) Derive gross pay from hourly rate x period hours, or annual salary / periods
2) Contractors: no withholding, no super, net = gross
3) Employees: PAYG withholding for the period, super on gross
4) net = gross - tax; total cost = gross + super
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from au_payroll.calculators.super_calculator import calculate_super, resolve_super_rate
from au_payroll.calculators.tax_calculator import calculate_period_tax
from au_payroll.calculators.types import PayrollCalculationInput, PayrollCalculationResult
from au_payroll.constants import CENTS, PERIODS_PER_YEAR, WEEKS_PER_PERIOD, ZERO, PayFrequency

if TYPE_CHECKING:
    from au_payroll.models import Employee, Organisation


def calculate_net_pay(gross: Decimal, tax: Decimal) -> Decimal:
    return (Decimal(gross) - Decimal(tax)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_gross_from_hourly(
    hourly_rate: Decimal,
    weekly_hours: Decimal,
    pay_frequency: PayFrequency | str,
) -> Decimal:
    """Hourly rate x weekly hours x weeks in the period (4.33 for a month)."""
    period_hours = Decimal(weekly_hours) * WEEKS_PER_PERIOD[PayFrequency.parse(pay_frequency)]
    return (Decimal(hourly_rate) * period_hours).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_gross_from_salary(
    annual_salary: Decimal, pay_frequency: PayFrequency | str
) -> Decimal:
    periods = PERIODS_PER_YEAR[PayFrequency.parse(pay_frequency)]
    return (Decimal(annual_salary) / periods).quantize(CENTS, rounding=ROUND_HALF_UP)


def derive_gross_pay(
    employee: Employee,
    pay_frequency: PayFrequency | str,
    hours_worked: Decimal | None = None,
) -> Decimal:
    """Gross pay for one period.

    hours_worked is weekly hours for the period; it defaults to the employee's
    contracted hours_per_week. Hourly pay applies only when both a rate and
    hours are known, otherwise the base salary is spread over the year.
    """
    weekly_hours = hours_worked if hours_worked is not None else employee.hours_per_week
    if employee.hourly_rate and weekly_hours:
        return calculate_gross_from_hourly(employee.hourly_rate, weekly_hours, pay_frequency)
    if employee.base_salary:
        return calculate_gross_from_salary(employee.base_salary, pay_frequency)
    return ZERO


def calculate_payroll(calc_input: PayrollCalculationInput) -> PayrollCalculationResult:
    """Calculate gross/tax/super/net/total cost for one period.

    Contractors manage their own tax and super, so both are zero for them.
    """
    gross = Decimal(calc_input.gross_pay)

    if calc_input.is_contractor:
        return PayrollCalculationResult(
            gross=gross,
            tax=ZERO,
            super_amount=ZERO,
            net=gross,
            total_cost=gross,
        )

    tax = calculate_period_tax(gross, calc_input.pay_frequency, calc_input.has_tax_free_threshold)
    super_amount = calculate_super(gross, calc_input.super_rate)

    return PayrollCalculationResult(
        gross=gross,
        tax=tax,
        super_amount=super_amount,
        net=calculate_net_pay(gross, tax),
        total_cost=gross + super_amount,
    )


def build_calculation_input(
    employee: Employee,
    pay_frequency: PayFrequency | str,
    hours_worked: Decimal | None = None,
    organisation: Organisation | None = None,
) -> PayrollCalculationInput:
    """Collect an employee's pay attributes into a calculation input."""
    return PayrollCalculationInput(
        gross_pay=derive_gross_pay(employee, pay_frequency, hours_worked),
        pay_frequency=PayFrequency.parse(pay_frequency),
        has_tax_free_threshold=employee.tax_free_threshold is not False,
        super_rate=resolve_super_rate(employee, organisation),
        is_contractor=employee.is_contractor,
    )


def calculate_employee_pay(
    employee: Employee,
    pay_frequency: PayFrequency | str,
    hours_worked: Decimal | None = None,
    organisation: Organisation | None = None,
) -> PayrollCalculationResult:
    """Derive gross for the employee and run it through calculate_payroll."""
    return calculate_payroll(
        build_calculation_input(employee, pay_frequency, hours_worked, organisation)
    )
