"""Time entry and correction records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from timeclock_payroll.errors import InvalidInterval
from timeclock_payroll.geo.verifier import Coordinate


class EntryState(str, Enum):
    """Lifecycle of a time entry.

    ACTIVE -> COMPLETED -> CORRECTED (unverified) -> CORRECTED ...
    COMPLETED or CORRECTED -> deleted (removed from the store)
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CORRECTED = "corrected"


class CorrectionType(str, Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BOTH = "both"
    DELETE = "delete"

    @property
    def needs_clock_in(self) -> bool:
        return self in (CorrectionType.CLOCK_IN, CorrectionType.BOTH)

    @property
    def needs_clock_out(self) -> bool:
        return self in (CorrectionType.CLOCK_OUT, CorrectionType.BOTH)


class CorrectionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CorrectionDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class ClockEvent:
    """One side of a time entry.

    ``location`` is ``None`` for manual entries and corrected times.
    """

    time: datetime
    location: Coordinate | None = None
    accuracy_meters: float | None = None
    verified: bool = False
    distance_meters: float | None = None


@dataclass(frozen=True)
class TimeEntry:
    id: UUID
    employee_id: UUID
    schedule_id: UUID
    work_date: date
    clock_in: ClockEvent
    clock_out: ClockEvent | None = None
    total_hours: Decimal | None = None
    verified: bool = False
    manual_entry: bool = False
    holiday: bool = False
    corrected_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.clock_out is None

    @property
    def state(self) -> EntryState:
        if self.clock_out is None:
            return EntryState.ACTIVE
        if self.corrected_at is not None:
            return EntryState.CORRECTED
        return EntryState.COMPLETED


@dataclass(frozen=True)
class Correction:
    id: UUID
    entry_id: UUID
    employee_id: UUID
    correction_type: CorrectionType
    reason: str
    requested_by: UUID
    requested_at: datetime
    requested_clock_in: datetime | None = None
    requested_clock_out: datetime | None = None
    status: CorrectionStatus = CorrectionStatus.PENDING
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    notes: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == CorrectionStatus.PENDING


def compute_total_hours(
    clock_in: datetime, clock_out: datetime, entry_id: UUID | None = None
) -> Decimal:
    """Elapsed hours rounded to 2 places.

    Raises:
        InvalidInterval: If clock_out precedes clock_in
    """
    if clock_out < clock_in:
        raise InvalidInterval(clock_in, clock_out, entry_id=entry_id)
    seconds = Decimal(str((clock_out - clock_in).total_seconds()))
    return (seconds / Decimal("3600")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
