"""Leave entitlements, accrual and ledger arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

from au_payroll.constants import (
    ANNUAL_LEAVE_HOURS_FULL_TIME,
    DEFAULT_HOURS_PER_DAY,
    HIGH_LEAVE_BALANCE_DAYS,
    LEAVE_ACCRUING_TYPES,
    LEAVE_LOADING_RATE,
    LONG_SERVICE_LEAVE_WEEKS,
    LONG_SERVICE_LEAVE_YEARS,
    LOW_LEAVE_BALANCE_DAYS,
    PERIODS_PER_YEAR,
    SICK_LEAVE_HOURS_FULL_TIME,
    STANDARD_HOURS_PER_WEEK,
    WORK_DAYS_PER_WEEK,
    ZERO,
    EmploymentType,
    LeaveTransactionType,
    LeaveType,
    PayFrequency,
)

if TYPE_CHECKING:
    from au_payroll.models import Employee

_DAYS_PER_YEAR = Decimal("365.25")
_ONE_DECIMAL = Decimal("0.1")


class NegativeLeaveBalanceError(Exception):
    """Raised when a ledger entry would take a balance below zero."""

    def __init__(self, leave_type: str, balance: Decimal, hours: Decimal):
        self.leave_type = leave_type
        self.balance = balance
        self.hours = hours
        super().__init__(
            f"{leave_type} leave balance of {balance}h cannot absorb {hours}h; "
            "the resulting balance would be negative"
        )


@dataclass(frozen=True)
class LeaveAlert:
    """Balance condition worth surfacing to the employer."""

    employee_id: object
    employee_name: str
    alert_type: str  # low_balance | negative_balance | high_balance
    leave_type: LeaveType
    current_balance: Decimal
    message: str
    severity: str  # error | warning | info


def _accrues_leave(employee: Employee) -> bool:
    return employee.employment_type in {t.value for t in LEAVE_ACCRUING_TYPES}


def _weekly_hours(employee: Employee) -> Decimal:
    if employee.hours_per_week:
        return Decimal(employee.hours_per_week)
    return STANDARD_HOURS_PER_WEEK


def _annual_entitlement(employee: Employee, full_time_hours: Decimal) -> Decimal:
    if employee.employment_type == EmploymentType.FULL_TIME.value:
        return full_time_hours
    return _weekly_hours(employee) / STANDARD_HOURS_PER_WEEK * full_time_hours


def _per_period(annual_hours: Decimal, pay_frequency: PayFrequency | str) -> Decimal:
    return annual_hours / PERIODS_PER_YEAR[PayFrequency.parse(pay_frequency)]


def calculate_annual_leave_accrual(
    employee: Employee, pay_frequency: PayFrequency | str
) -> Decimal:
    """Annual leave hours accrued in one pay period (unrounded).

    Full-time: 152h/year. Part-time: pro-rated by hours_per_week / 38.
    Casuals and contractors accrue nothing.
    """
    if not _accrues_leave(employee):
        return ZERO
    return _per_period(_annual_entitlement(employee, ANNUAL_LEAVE_HOURS_FULL_TIME), pay_frequency)


def calculate_sick_leave_accrual(
    employee: Employee, pay_frequency: PayFrequency | str
) -> Decimal:
    """Sick/personal leave hours accrued in one pay period (76h/year full-time)."""
    if not _accrues_leave(employee):
        return ZERO
    return _per_period(_annual_entitlement(employee, SICK_LEAVE_HOURS_FULL_TIME), pay_frequency)


def calculate_long_service_leave(employee: Employee, years_of_service: Decimal | float) -> Decimal:
    """Long service entitlement in hours; nothing before the qualifying years."""
    if Decimal(str(years_of_service)) < LONG_SERVICE_LEAVE_YEARS:
        return ZERO
    return LONG_SERVICE_LEAVE_WEEKS * _weekly_hours(employee)


def calculate_years_of_service(start_date: date, as_of: date | None = None) -> Decimal:
    """Completed years of service, truncated to one decimal place."""
    as_of = as_of or date.today()
    years = Decimal((as_of - start_date).days) / _DAYS_PER_YEAR
    return years.quantize(_ONE_DECIMAL, rounding=ROUND_DOWN)


def is_eligible_for_leave(
    employee: Employee,
    leave_type: LeaveType | str,
    as_of: date | None = None,
) -> bool:
    """Consult before crediting any accrual."""
    if not _accrues_leave(employee):
        return False

    if LeaveType(leave_type) is LeaveType.LONG_SERVICE:
        if employee.start_date is None:
            return False
        years = calculate_years_of_service(employee.start_date, as_of)
        return years >= LONG_SERVICE_LEAVE_YEARS

    return True


def hours_per_day(employee: Employee | None = None) -> Decimal:
    """Working day length: hours_per_week / 5, or 7.6 when weekly hours are unknown."""
    if employee is not None and employee.hours_per_week:
        return Decimal(employee.hours_per_week) / WORK_DAYS_PER_WEEK
    return DEFAULT_HOURS_PER_DAY


def hours_to_days(hours: Decimal, day_length: Decimal = DEFAULT_HOURS_PER_DAY) -> Decimal:
    return (Decimal(hours) / Decimal(day_length)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)


def days_to_hours(days: Decimal, day_length: Decimal = DEFAULT_HOURS_PER_DAY) -> Decimal:
    return Decimal(days) * Decimal(day_length)


def format_leave_balance(hours: Decimal, day_length: Decimal = DEFAULT_HOURS_PER_DAY) -> str:
    days = hours_to_days(hours, day_length)
    return f"{Decimal(hours):.1f}h ({days:.1f} days)"


def calculate_leave_loading(
    base_amount: Decimal, loading_rate: Decimal = LEAVE_LOADING_RATE
) -> Decimal:
    """Leave loading on annual leave pay (17.5% by default)."""
    return Decimal(base_amount) * Decimal(loading_rate) / 100


def apply_leave_transaction(
    balance: Decimal,
    hours: Decimal,
    transaction_type: LeaveTransactionType | str,
    leave_type: LeaveType | str = LeaveType.ANNUAL,
) -> Decimal:
    """Return balance_after = balance + hours.

    Adjustments and leave taken may not leave a negative balance.
    """
    transaction_type = LeaveTransactionType(transaction_type)
    balance_after = Decimal(balance) + Decimal(hours)
    if balance_after < 0 and transaction_type in (
        LeaveTransactionType.ADJUSTMENT,
        LeaveTransactionType.TAKEN,
    ):
        raise NegativeLeaveBalanceError(LeaveType(leave_type).value, Decimal(balance), Decimal(hours))
    return balance_after


def check_leave_alerts(employees: Iterable[Employee]) -> list[LeaveAlert]:
    """Flag negative, low (< 5 days) and excessive (> 40 days) balances."""
    alerts: list[LeaveAlert] = []

    for emp in employees:
        if not _accrues_leave(emp):
            continue

        day_length = hours_per_day(emp)
        annual = emp.leave_balance(LeaveType.ANNUAL.value)

        if annual < 0:
            alerts.append(
                LeaveAlert(
                    employee_id=emp.employee_id,
                    employee_name=emp.full_name,
                    alert_type="negative_balance",
                    leave_type=LeaveType.ANNUAL,
                    current_balance=annual,
                    message=f"{emp.full_name} has negative annual leave balance ({annual:.1f}h)",
                    severity="error",
                )
            )
        elif annual < day_length * LOW_LEAVE_BALANCE_DAYS:
            alerts.append(
                LeaveAlert(
                    employee_id=emp.employee_id,
                    employee_name=emp.full_name,
                    alert_type="low_balance",
                    leave_type=LeaveType.ANNUAL,
                    current_balance=annual,
                    message=f"{emp.full_name} has low annual leave balance ({annual:.1f}h)",
                    severity="warning",
                )
            )
        elif annual > day_length * HIGH_LEAVE_BALANCE_DAYS:
            alerts.append(
                LeaveAlert(
                    employee_id=emp.employee_id,
                    employee_name=emp.full_name,
                    alert_type="high_balance",
                    leave_type=LeaveType.ANNUAL,
                    current_balance=annual,
                    message=(
                        f"{emp.full_name} has high annual leave balance ({annual:.1f}h). "
                        "Consider encouraging leave usage."
                    ),
                    severity="info",
                )
            )

        sick = emp.leave_balance(LeaveType.SICK.value)
        if sick < 0:
            alerts.append(
                LeaveAlert(
                    employee_id=emp.employee_id,
                    employee_name=emp.full_name,
                    alert_type="negative_balance",
                    leave_type=LeaveType.SICK,
                    current_balance=sick,
                    message=f"{emp.full_name} has negative sick leave balance ({sick:.1f}h)",
                    severity="error",
                )
            )

    return alerts
