"""Persistence for time entries, swaps and payroll."""

from timeclock_payroll.storage.memory import (
    InMemoryPayrollStore,
    InMemorySwapRequestStore,
    InMemoryTimeEntryStore,
)
from timeclock_payroll.storage.protocols import (
    PayrollStore,
    SwapRequestStore,
    TimeEntryStore,
)
from timeclock_payroll.storage.sql import (
    SqlPayrollStore,
    SqlSwapRequestStore,
    SqlTimeEntryStore,
)

__all__ = [
    "InMemoryPayrollStore",
    "InMemorySwapRequestStore",
    "InMemoryTimeEntryStore",
    "PayrollStore",
    "SqlPayrollStore",
    "SqlSwapRequestStore",
    "SqlTimeEntryStore",
    "SwapRequestStore",
    "TimeEntryStore",
]
