"""Time entries, clock events and corrections."""

from timeclock_payroll.timekeeping.ledger import TimeEntryLedger
from timeclock_payroll.timekeeping.types import (
    ClockEvent,
    Correction,
    CorrectionDecision,
    CorrectionStatus,
    CorrectionType,
    EntryState,
    TimeEntry,
    compute_total_hours,
)

__all__ = [
    "ClockEvent",
    "Correction",
    "CorrectionDecision",
    "CorrectionStatus",
    "CorrectionType",
    "EntryState",
    "TimeEntry",
    "TimeEntryLedger",
    "compute_total_hours",
]
