"""Error taxonomy for time tracking, scheduling and payroll operations.

Every error carries a stable ``code`` so that callers (the HTTP layer, a
notification dispatcher) can react without parsing messages.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from timeclock_payroll.geo.verifier import Rejected
    from timeclock_payroll.scheduling.conflicts import ShiftInterval


class TimeclockError(Exception):
    """Base class for all domain errors."""

    code = "TIMECLOCK_ERROR"

    def __init__(self, message: str, **context: Any):
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "detail": str(self),
            "code": self.code,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


# ===== Input validation =====


class ValidationError(TimeclockError):
    """Malformed or inconsistent input; nothing was applied."""

    code = "VALIDATION_ERROR"


class InvalidCoordinate(ValidationError):
    code = "INVALID_COORDINATE"


class InvalidInterval(ValidationError):
    """An end time precedes its start time."""

    code = "INVALID_INTERVAL"

    def __init__(self, start: datetime, end: datetime, entry_id: UUID | None = None):
        self.start = start
        self.end = end
        self.entry_id = entry_id
        super().__init__(
            f"End time {end.isoformat()} is before start time {start.isoformat()}",
            start=start,
            end=end,
            entry_id=entry_id,
        )


class InvalidCorrection(ValidationError):
    code = "INVALID_CORRECTION"


# ===== Not found =====


class NotFoundError(TimeclockError):
    code = "NOT_FOUND"


class NoActiveEntry(NotFoundError):
    code = "NO_ACTIVE_ENTRY"

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(f"No active time entry {entry_id}", entry_id=entry_id)


class EntryNotFound(NotFoundError):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(f"Time entry {entry_id} not found", entry_id=entry_id)


class CorrectionNotFound(NotFoundError):
    code = "CORRECTION_NOT_FOUND"

    def __init__(self, correction_id: UUID):
        self.correction_id = correction_id
        super().__init__(
            f"Correction {correction_id} not found", correction_id=correction_id
        )


class ScheduleNotFound(NotFoundError):
    code = "SCHEDULE_NOT_FOUND"

    def __init__(self, schedule_id: UUID):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule {schedule_id} not found", schedule_id=schedule_id)


class SwapRequestNotFound(NotFoundError):
    code = "SWAP_REQUEST_NOT_FOUND"

    def __init__(self, swap_id: UUID):
        self.swap_id = swap_id
        super().__init__(f"Shift swap request {swap_id} not found", swap_id=swap_id)


class PayrollPeriodNotFound(NotFoundError):
    code = "PAYROLL_PERIOD_NOT_FOUND"

    def __init__(self, period_id: UUID):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} not found", period_id=period_id)


# ===== Conflicts =====


class ConflictError(TimeclockError):
    """A uniqueness or state precondition was violated."""

    code = "CONFLICT"


class ActiveEntryExists(ConflictError):
    code = "ACTIVE_ENTRY_EXISTS"

    def __init__(self, employee_id: UUID, active_entry_id: UUID | None = None):
        self.employee_id = employee_id
        self.active_entry_id = active_entry_id
        super().__init__(
            f"Employee {employee_id} is already clocked in",
            employee_id=employee_id,
            active_entry_id=active_entry_id,
        )


class AlreadyClockedOut(ConflictError):
    code = "ALREADY_CLOCKED_OUT"

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(
            f"Time entry {entry_id} is already clocked out", entry_id=entry_id
        )


class ScheduleNotAssigned(ConflictError):
    code = "SCHEDULE_NOT_ASSIGNED"

    def __init__(self, schedule_id: UUID, employee_id: UUID):
        super().__init__(
            f"Schedule {schedule_id} is not assigned to employee {employee_id}",
            schedule_id=schedule_id,
            employee_id=employee_id,
        )


class EntryNotCompleted(ConflictError):
    """Active entries may not be corrected or deleted."""

    code = "ENTRY_NOT_COMPLETED"

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(
            f"Time entry {entry_id} is still active; clock out before correcting",
            entry_id=entry_id,
        )


class CorrectionAlreadyPending(ConflictError):
    code = "CORRECTION_ALREADY_PENDING"

    def __init__(self, entry_id: UUID, pending_id: UUID | None = None):
        self.entry_id = entry_id
        self.pending_id = pending_id
        super().__init__(
            f"A correction request is already pending for time entry {entry_id}",
            entry_id=entry_id,
            pending_id=pending_id,
        )


class CorrectionNotPending(ConflictError):
    code = "CORRECTION_NOT_PENDING"

    def __init__(self, correction_id: UUID, status: str):
        self.correction_id = correction_id
        self.status = status
        super().__init__(
            f"Correction {correction_id} is already {status}",
            correction_id=correction_id,
            status=status,
        )


class ScheduleConflictDetected(ConflictError):
    code = "SCHEDULE_CONFLICT"

    def __init__(self, employee_id: UUID, conflicts: list[ShiftInterval]):
        self.employee_id = employee_id
        self.conflicts = conflicts
        super().__init__(
            f"Employee {employee_id} already has {len(conflicts)} overlapping shift(s)",
            employee_id=employee_id,
            conflicting_schedule_ids=[c.schedule_id for c in conflicts],
        )


class SwapAlreadyPending(ConflictError):
    code = "SWAP_ALREADY_PENDING"

    def __init__(self, schedule_id: UUID):
        self.schedule_id = schedule_id
        super().__init__(
            f"A pending swap request already exists for schedule {schedule_id}",
            schedule_id=schedule_id,
        )


class SwapNotEligible(ConflictError):
    code = "SWAP_NOT_ELIGIBLE"

    def __init__(self, reasons: list[str]):
        self.reasons = reasons
        super().__init__("; ".join(reasons), reasons=reasons)


class InvalidTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, from_status=from_status, to_status=to_status)


# ===== Verification =====


class LocationRejected(TimeclockError):
    """A clock event failed location verification.

    This is an expected business outcome, not a system failure.
    """

    code = "LOCATION_REJECTED"

    def __init__(self, outcome: Rejected):
        self.outcome = outcome
        super().__init__(
            outcome.describe(),
            reason=outcome.reason.value,
            distance_meters=outcome.distance_meters,
            accuracy_meters=outcome.accuracy_meters,
        )


# ===== Derivation =====


class PayrollCalculationError(TimeclockError):
    """A single employee's payroll line could not be derived."""

    code = "PAYROLL_CALCULATION_ERROR"


class InvalidRateCard(PayrollCalculationError):
    code = "INVALID_RATE_CARD"


class DeductionsExceedGross(PayrollCalculationError):
    code = "DEDUCTIONS_EXCEED_GROSS"

    def __init__(self, employee_id: UUID, gross: Decimal, total_deductions: Decimal):
        self.employee_id = employee_id
        self.gross = gross
        self.total_deductions = total_deductions
        super().__init__(
            f"Deductions {total_deductions} exceed gross pay {gross} "
            f"for employee {employee_id}",
            employee_id=employee_id,
            gross=gross,
            total_deductions=total_deductions,
        )
