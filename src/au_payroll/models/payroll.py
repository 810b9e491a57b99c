"""Payroll run, payroll item and STP lodgement models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from au_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from au_payroll.models.employee import Employee
    from au_payroll.models.organisation import Organisation


class PayrollRun(Base, TimestampMixin):
    """One execution of payroll for a pay period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organisation.organisation_id", ondelete="CASCADE"),
        nullable=False,
    )
    frequency: Mapped[str] = mapped_column(String, nullable=False)
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    total_gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_super: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    stp_lodged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stp_lodged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    stp_report_id: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "frequency IN ('WEEKLY', 'FORTNIGHTLY', 'MONTHLY')",
            name="payroll_run_frequency_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'employees_selected', 'reviewed', 'finalized', "
            "'completed', 'cancelled')",
            name="payroll_run_status_check",
        ),
        CheckConstraint(
            "pay_period_end >= pay_period_start",
            name="payroll_run_dates_check",
        ),
    )

    # Relationships
    organisation: Mapped[Organisation] = relationship(back_populates="payroll_runs")
    items: Mapped[list[PayrollItem]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
    )

    @property
    def effective_pay_date(self) -> date:
        """Pay date, falling back to the period end when not yet set."""
        return self.pay_date or self.pay_period_end


class PayrollItem(Base, TimestampMixin):
    """One employee's calculated pay within a payroll run.

    net = gross - tax; super is paid on top and never deducted.
    """

    __tablename__ = "payroll_item"

    payroll_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    gross: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    super_amount: Mapped[Decimal] = mapped_column(
        "super", Numeric(12, 2), nullable=False, default=0
    )
    net: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    hours_worked: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="items")
    employee: Mapped[Employee] = relationship(back_populates="payroll_items")


class StpReportRecord(Base, TimestampMixin):
    """Persisted STP report and its lodgement status."""

    __tablename__ = "stp_report"

    stp_report_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organisation.organisation_id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    report_id: Mapped[str] = mapped_column(String, nullable=False)
    report_type: Mapped[str] = mapped_column(String, nullable=False, default="update")
    lodgement_method: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    lodgement_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    submission_key: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    stp_identifier: Mapped[str | None] = mapped_column(String, nullable=True)
    lodged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    report_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    csv_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "report_type IN ('update', 'full_file_replacement')",
            name="stp_report_type_check",
        ),
        CheckConstraint(
            "lodgement_method IN ('manual', 'api', 'ssp')",
            name="stp_report_method_check",
        ),
        CheckConstraint(
            "lodgement_status IN ('pending', 'lodged', 'accepted', 'rejected')",
            name="stp_report_status_check",
        ),
    )
