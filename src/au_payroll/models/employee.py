"""Employee and leave ledger models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from au_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from au_payroll.models.organisation import Organisation
    from au_payroll.models.payroll import PayrollItem, PayrollRun


class Employee(Base, TimestampMixin):
    """Employee record.

    Exactly one of base_salary / hourly_rate drives gross pay; hourly wins
    when both are present.
    """

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organisation.organisation_id", ondelete="CASCADE"),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    position: Mapped[str | None] = mapped_column(String, nullable=True)

    employment_type: Mapped[str] = mapped_column(String, nullable=False, default="full_time")
    hours_per_week: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    pay_frequency: Mapped[str] = mapped_column(String, nullable=False, default="fortnightly")

    # Compensation
    base_salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)

    # Tax attributes
    tfn: Mapped[str | None] = mapped_column(String, nullable=True)
    abn: Mapped[str | None] = mapped_column(String, nullable=True)
    tax_free_threshold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    help_debt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_scale_type: Mapped[str | None] = mapped_column(String, nullable=True)
    country_code: Mapped[str | None] = mapped_column(String, nullable=True)

    super_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    # Leave balances (hours)
    annual_leave_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    sick_leave_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    personal_leave_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    long_service_leave_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), nullable=False, default=0
    )

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "employment_type IN ('full_time', 'part_time', 'casual', 'contractor')",
            name="employee_employment_type_check",
        ),
        CheckConstraint(
            "pay_frequency IN ('weekly', 'fortnightly', 'monthly')",
            name="employee_pay_frequency_check",
        ),
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="employee_dates_check",
        ),
    )

    # Relationships
    organisation: Mapped[Organisation] = relationship(back_populates="employees")
    payroll_items: Mapped[list[PayrollItem]] = relationship(back_populates="employee")
    leave_transactions: Mapped[list[LeaveTransaction]] = relationship(
        back_populates="employee"
    )

    @property
    def is_contractor(self) -> bool:
        return self.employment_type == "contractor"

    def leave_balance(self, leave_type: str) -> Decimal:
        """Current balance in hours for a leave category."""
        return Decimal(getattr(self, f"{leave_type}_leave_hours") or 0)

    def set_leave_balance(self, leave_type: str, hours: Decimal) -> None:
        setattr(self, f"{leave_type}_leave_hours", hours)


class LeaveTransaction(Base, TimestampMixin):
    """Immutable leave ledger entry."""

    __tablename__ = "leave_transaction"

    leave_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organisation.organisation_id", ondelete="CASCADE"),
        nullable=False,
    )
    transaction_type: Mapped[str] = mapped_column(String, nullable=False)
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    payroll_run_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="SET NULL"),
        nullable=True,
    )
    reference: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('accrual', 'taken', 'adjustment', 'payout', 'carryover')",
            name="leave_transaction_type_check",
        ),
        CheckConstraint(
            "leave_type IN ('annual', 'sick', 'personal', 'long_service')",
            name="leave_transaction_leave_type_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="leave_transactions")
    payroll_run: Mapped[PayrollRun | None] = relationship()
