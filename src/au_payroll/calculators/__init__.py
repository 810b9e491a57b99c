"""Payroll calculation engine."""

from au_payroll.calculators.engine import (
    calculate_employee_pay,
    calculate_payroll,
    derive_gross_pay,
)
from au_payroll.calculators.leave_calculator import (
    calculate_annual_leave_accrual,
    calculate_long_service_leave,
    calculate_sick_leave_accrual,
    is_eligible_for_leave,
)
from au_payroll.calculators.super_calculator import calculate_super
from au_payroll.calculators.tax_calculator import (
    calculate_annual_tax,
    calculate_fortnightly_tax,
    calculate_monthly_tax,
    calculate_period_tax,
    calculate_weekly_tax,
)
from au_payroll.calculators.types import (
    PayrollCalculationInput,
    PayrollCalculationResult,
    YTDTotals,
)

__all__ = [
    "calculate_annual_leave_accrual",
    "calculate_annual_tax",
    "calculate_employee_pay",
    "calculate_fortnightly_tax",
    "calculate_long_service_leave",
    "calculate_monthly_tax",
    "calculate_payroll",
    "calculate_period_tax",
    "calculate_sick_leave_accrual",
    "calculate_super",
    "calculate_weekly_tax",
    "derive_gross_pay",
    "is_eligible_for_leave",
    "PayrollCalculationInput",
    "PayrollCalculationResult",
    "YTDTotals",
]
