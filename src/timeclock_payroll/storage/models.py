"""ORM records for time entries, corrections, swaps and payroll.

Uniqueness rules live in the schema as partial unique indexes so that
concurrent writers are arbitrated by the database:
- one open time entry per employee
- one pending correction per time entry
- one pending swap per schedule (via swap_schedule_claim)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from timeclock_payroll.storage.base import Base, TimestampMixin

MONEY = Numeric(14, 2)
HOURS = Numeric(8, 2)


class TimeEntryRecord(Base, TimestampMixin):
    __tablename__ = "time_entry"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    schedule_id: Mapped[UUID] = mapped_column(nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    clock_in_time: Mapped[datetime] = mapped_column(nullable=False)
    clock_in_latitude: Mapped[float | None] = mapped_column(Float)
    clock_in_longitude: Mapped[float | None] = mapped_column(Float)
    clock_in_accuracy: Mapped[float | None] = mapped_column(Float)
    clock_in_distance: Mapped[float | None] = mapped_column(Float)
    clock_in_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    clock_out_time: Mapped[datetime | None] = mapped_column()
    clock_out_latitude: Mapped[float | None] = mapped_column(Float)
    clock_out_longitude: Mapped[float | None] = mapped_column(Float)
    clock_out_accuracy: Mapped[float | None] = mapped_column(Float)
    clock_out_distance: Mapped[float | None] = mapped_column(Float)
    clock_out_verified: Mapped[bool | None] = mapped_column(Boolean)

    total_hours: Mapped[Decimal | None] = mapped_column(HOURS)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    manual_entry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    corrected_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index(
            "time_entry_one_active_per_employee",
            "employee_id",
            unique=True,
            sqlite_where=text("clock_out_time IS NULL"),
            postgresql_where=text("clock_out_time IS NULL"),
        ),
        CheckConstraint(
            "clock_out_time IS NULL OR clock_out_time >= clock_in_time",
            name="time_entry_interval_check",
        ),
        CheckConstraint("total_hours IS NULL OR total_hours >= 0", name="time_entry_hours_check"),
    )


class CorrectionRecord(Base, TimestampMixin):
    """Correction history outlives the entry when a DELETE is approved."""

    __tablename__ = "time_entry_correction"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    entry_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    correction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    requested_by: Mapped[UUID] = mapped_column(nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    requested_clock_in: Mapped[datetime | None] = mapped_column()
    requested_clock_out: Mapped[datetime | None] = mapped_column()
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    resolved_by: Mapped[UUID | None] = mapped_column()
    resolved_at: Mapped[datetime | None] = mapped_column()
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index(
            "correction_one_pending_per_entry",
            "entry_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        CheckConstraint(
            "correction_type IN ('clock_in', 'clock_out', 'both', 'delete')",
            name="correction_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="correction_status_check",
        ),
    )


class SwapRequestRecord(Base, TimestampMixin):
    __tablename__ = "shift_swap_request"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    requester_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    requester_schedule_id: Mapped[UUID] = mapped_column(nullable=False)
    target_employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    target_schedule_id: Mapped[UUID] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    resolved_by: Mapped[UUID | None] = mapped_column()
    resolved_at: Mapped[datetime | None] = mapped_column()
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint(
            "requester_schedule_id <> target_schedule_id",
            name="swap_distinct_schedules_check",
        ),
    )


class SwapScheduleClaim(Base):
    """A schedule held by a pending swap; released when the swap is resolved."""

    __tablename__ = "swap_schedule_claim"

    schedule_id: Mapped[UUID] = mapped_column(primary_key=True)
    swap_id: Mapped[UUID] = mapped_column(
        ForeignKey("shift_swap_request.id", ondelete="CASCADE"), nullable=False
    )


class PayrollPeriodRecord(Base, TimestampMixin):
    __tablename__ = "payroll_period"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    cutoff_date: Mapped[date | None] = mapped_column(Date)
    pay_date: Mapped[date | None] = mapped_column(Date)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="payroll_period_dates_check"),
        CheckConstraint(
            "status IN ('draft', 'processing', 'completed', 'error')",
            name="payroll_period_status_check",
        ),
    )


class PayrollCalculationRecord(Base, TimestampMixin):
    __tablename__ = "payroll_calculation"

    id: Mapped[UUID] = mapped_column(primary_key=True)  # calculation_id
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    regular_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    holiday_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    regular_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    holiday_rate: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    regular_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    holiday_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    social_security: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    advances: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    inputs_fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)
    advance_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="payroll_calculation_employee_unique"),
        CheckConstraint("net_pay >= 0", name="payroll_calculation_net_check"),
    )


class SalaryAdvanceRecord(Base, TimestampMixin):
    __tablename__ = "salary_advance"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requested_at: Mapped[datetime | None] = mapped_column()
    approved_at: Mapped[datetime | None] = mapped_column()
    approved_by: Mapped[UUID | None] = mapped_column()

    __table_args__ = (
        CheckConstraint("amount > 0", name="salary_advance_amount_check"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'processed')",
            name="salary_advance_status_check",
        ),
    )
