"""API routes."""

from timeclock_payroll.api.routes.health import router as health_router
from timeclock_payroll.api.routes.payroll import router as payroll_router
from timeclock_payroll.api.routes.schedules import schedules_router, shift_swaps_router
from timeclock_payroll.api.routes.timesheet import router as timesheet_router

__all__ = [
    "health_router",
    "payroll_router",
    "schedules_router",
    "shift_swaps_router",
    "timesheet_router",
]
