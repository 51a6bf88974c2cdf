"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from timeclock_payroll.config import get_settings
from timeclock_payroll.geo.verifier import Coordinate, LocationSample
from timeclock_payroll.payroll.types import (
    AdvanceStatus,
    DeductionInputs,
    ExclusionReason,
    PeriodFrequency,
    PeriodStatus,
    RateCard,
)
from timeclock_payroll.scheduling.swaps import SwapStatus
from timeclock_payroll.timekeeping.types import (
    CorrectionDecision,
    CorrectionStatus,
    CorrectionType,
    EntryState,
)


# ============================================================================
# Location schemas
# ============================================================================


class CoordinateSchema(BaseModel):
    """A WGS84 point."""

    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class LocationSampleRequest(BaseModel):
    """Device location attached to a clock event."""

    latitude: float
    longitude: float
    accuracy_meters: float = Field(ge=0)
    captured_at: datetime | None = None

    def to_sample(self, now: datetime) -> LocationSample:
        return LocationSample(
            coords=Coordinate(self.latitude, self.longitude),
            accuracy_meters=self.accuracy_meters,
            captured_at=self.captured_at or now,
        )


# ============================================================================
# Timesheet schemas
# ============================================================================


class ClockInRequest(BaseModel):
    schedule_id: UUID
    location: LocationSampleRequest | None = None
    reference: CoordinateSchema | None = None
    allow_unverified: bool = False


class ClockOutRequest(BaseModel):
    entry_id: UUID
    location: LocationSampleRequest | None = None
    reference: CoordinateSchema | None = None
    allow_unverified: bool = False


class ClockEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time: datetime
    location: CoordinateSchema | None = None
    accuracy_meters: float | None = None
    verified: bool
    distance_meters: float | None = None


class TimeEntryResponse(BaseModel):
    """Schema for time entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    schedule_id: UUID
    work_date: date
    clock_in: ClockEventResponse
    clock_out: ClockEventResponse | None = None
    total_hours: Decimal | None = None
    verified: bool
    manual_entry: bool
    holiday: bool
    corrected_at: datetime | None = None
    state: EntryState


class ActiveEntryResponse(BaseModel):
    entry: TimeEntryResponse | None = None


class CorrectionCreate(BaseModel):
    """Schema for requesting a time entry correction."""

    entry_id: UUID
    correction_type: CorrectionType
    reason: str = Field(min_length=1)
    requested_clock_in: AwareDatetime | None = None
    requested_clock_out: AwareDatetime | None = None


class CorrectionResolve(BaseModel):
    decision: CorrectionDecision
    notes: str | None = None


class CorrectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entry_id: UUID
    employee_id: UUID
    correction_type: CorrectionType
    reason: str
    requested_by: UUID
    requested_at: datetime
    requested_clock_in: datetime | None = None
    requested_clock_out: datetime | None = None
    status: CorrectionStatus
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    notes: str | None = None


# ============================================================================
# Scheduling schemas
# ============================================================================


class ConflictCheckRequest(BaseModel):
    """A proposed shift to test against the employee's schedule."""

    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    exclude_schedule_id: UUID | None = None


class ShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    schedule_id: UUID
    employee_id: UUID
    shift_date: date
    start_time: time
    end_time: time
    branch_id: UUID | None = None


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: list[ShiftResponse]


class SwapCreate(BaseModel):
    requester_schedule_id: UUID
    target_schedule_id: UUID
    reason: str = Field(min_length=1)


class SwapResolve(BaseModel):
    approve: bool
    notes: str | None = None


class SwapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requester_id: UUID
    requester_schedule_id: UUID
    target_employee_id: UUID
    target_schedule_id: UUID
    reason: str
    created_at: datetime
    status: SwapStatus
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    notes: str | None = None


# ============================================================================
# Payroll schemas
# ============================================================================


class RateCardSchema(BaseModel):
    regular_rate: Decimal = Field(gt=0)
    overtime_rate: Decimal | None = Field(default=None, ge=0)
    holiday_rate: Decimal | None = Field(default=None, ge=0)
    holidays: list[date] = Field(default_factory=list)

    def to_rate_card(self) -> RateCard:
        """Multipliers for derived rates come from settings."""
        settings = get_settings()
        return RateCard(
            regular_rate=self.regular_rate,
            overtime_rate=self.overtime_rate,
            holiday_rate=self.holiday_rate,
            holidays=frozenset(self.holidays),
            overtime_multiplier=settings.overtime_multiplier,
            holiday_multiplier=settings.holiday_multiplier,
        )


class DeductionsSchema(BaseModel):
    """Leave ``tax`` or ``social_security`` out to have them computed."""

    tax: Decimal | None = None
    social_security: Decimal | None = None
    other: Decimal = Decimal("0")

    def to_inputs(self) -> DeductionInputs:
        return DeductionInputs(
            tax=self.tax, social_security=self.social_security, other=self.other
        )


class EmployeePayrollRequest(BaseModel):
    employee_id: UUID
    rate_card: RateCardSchema
    deductions: DeductionsSchema = Field(default_factory=DeductionsSchema)


class CalculateRequest(EmployeePayrollRequest):
    """Dry-run calculation for one employee."""

    period_start: date
    period_end: date


class RatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    regular: Decimal
    overtime: Decimal
    holiday: Decimal


class EarningsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    regular: Decimal
    overtime: Decimal
    holiday: Decimal


class DeductionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax: Decimal
    social_security: Decimal
    advances: Decimal
    other: Decimal


class PayrollCalculationResponse(BaseModel):
    """Schema for a derived payroll calculation."""

    model_config = ConfigDict(from_attributes=True)

    calculation_id: UUID
    employee_id: UUID
    period_start: date
    period_end: date
    regular_hours: Decimal
    overtime_hours: Decimal
    holiday_hours: Decimal
    rates: RatesResponse
    earnings: EarningsResponse
    gross_pay: Decimal
    deductions: DeductionsResponse
    total_deductions: Decimal
    net_pay: Decimal
    inputs_fingerprint: str
    advance_ids: list[UUID]


class ExcludedEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    reason: ExclusionReason


class CalculationResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    calculation: PayrollCalculationResponse
    included_entry_ids: list[UUID]
    excluded: list[ExcludedEntryResponse]


class PeriodCreate(BaseModel):
    """Create a period from explicit dates, or from a frequency and a start date."""

    start_date: date
    end_date: date | None = None
    frequency: PeriodFrequency | None = None
    name: str = ""
    pay_date: date | None = None
    cutoff_date: date | None = None


class PeriodResponse(BaseModel):
    """Schema for payroll period response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    start_date: date
    end_date: date
    status: PeriodStatus
    name: str
    cutoff_date: date | None = None
    pay_date: date | None = None


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_employees: int
    total_gross: Decimal
    total_net: Decimal
    total_deductions: Decimal
    total_social_security: Decimal
    total_tax: Decimal
    total_advances: Decimal


class PeriodDetailResponse(BaseModel):
    period: PeriodResponse
    calculations: list[PayrollCalculationResponse]
    summary: SummaryResponse


class RunRequest(BaseModel):
    employees: list[EmployeePayrollRequest] = Field(min_length=1)


class EmployeeFailureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    code: str
    message: str


class RunResponse(BaseModel):
    period: PeriodResponse
    results: list[CalculationResultResponse]
    failures: list[EmployeeFailureResponse]
    summary: SummaryResponse


class AdvanceCreate(BaseModel):
    """Request part of the earnings verified so far in a window."""

    amount: Decimal = Field(gt=0)
    hourly_rate: Decimal = Field(gt=0)
    start_date: date
    end_date: date
    reason: str = ""


class AdvanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    amount: Decimal
    status: AdvanceStatus
    reason: str
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
