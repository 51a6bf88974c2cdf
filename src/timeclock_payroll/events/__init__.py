"""Domain events package.

This package provides:
- Typed domain events for timekeeping, scheduling and payroll
- Event emitter for handing events to notification dispatch
"""

from timeclock_payroll.events.emitter import EventBatch, EventEmitter, EventHandler
from timeclock_payroll.events.types import (
    # Base
    DomainEvent,
    EventCategory,
    EventMetadata,
    # Timekeeping
    ClockedIn,
    ClockedOut,
    ClockInRejected,
    CorrectionRequested,
    CorrectionResolved,
    # Scheduling
    SwapRequested,
    SwapResolved,
    # Payroll
    PayrollPeriodCompleted,
    PayrollPeriodFailed,
)

__all__ = [
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "EventBatch",
    "EventEmitter",
    "EventHandler",
    "ClockedIn",
    "ClockedOut",
    "ClockInRejected",
    "CorrectionRequested",
    "CorrectionResolved",
    "SwapRequested",
    "SwapResolved",
    "PayrollPeriodCompleted",
    "PayrollPeriodFailed",
]
