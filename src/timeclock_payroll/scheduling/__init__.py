"""Shift conflict detection and shift swaps."""

from timeclock_payroll.scheduling.conflicts import (
    ScheduleConflictChecker,
    ShiftInterval,
    SwapEligibility,
    intervals_overlap,
    shift_bounds,
)
from timeclock_payroll.scheduling.directory import (
    InMemoryScheduleDirectory,
    ScheduleDirectory,
)
from timeclock_payroll.scheduling.swaps import ShiftSwapService, SwapRequest, SwapStatus

__all__ = [
    "InMemoryScheduleDirectory",
    "ScheduleConflictChecker",
    "ScheduleDirectory",
    "ShiftInterval",
    "ShiftSwapService",
    "SwapEligibility",
    "SwapRequest",
    "SwapStatus",
    "intervals_overlap",
    "shift_bounds",
]
