"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Callable
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker

from timeclock_payroll.config import Settings, get_settings
from timeclock_payroll.events import EventEmitter
from timeclock_payroll.geo.verifier import GeoVerifier
from timeclock_payroll.payroll.advances import SalaryAdvanceService
from timeclock_payroll.payroll.engine import PayrollEngine
from timeclock_payroll.payroll.run import PayrollRunService
from timeclock_payroll.permissions import Actor, Permission, Role
from timeclock_payroll.scheduling.conflicts import ScheduleConflictChecker
from timeclock_payroll.scheduling.directory import InMemoryScheduleDirectory, ScheduleDirectory
from timeclock_payroll.scheduling.swaps import ShiftSwapService
from timeclock_payroll.storage.database import init_db
from timeclock_payroll.storage.memory import (
    InMemoryPayrollStore,
    InMemorySwapRequestStore,
    InMemoryTimeEntryStore,
)
from timeclock_payroll.storage.protocols import PayrollStore, SwapRequestStore, TimeEntryStore
from timeclock_payroll.storage.sql import (
    SqlPayrollStore,
    SqlSwapRequestStore,
    SqlTimeEntryStore,
)
from timeclock_payroll.timekeeping.ledger import TimeEntryLedger

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Services:
    """Everything the routes need, wired once per application."""

    directory: ScheduleDirectory
    entry_store: TimeEntryStore
    swap_store: SwapRequestStore
    payroll_store: PayrollStore
    emitter: EventEmitter
    ledger: TimeEntryLedger
    conflicts: ScheduleConflictChecker
    swaps: ShiftSwapService
    payroll: PayrollRunService
    advances: SalaryAdvanceService
    clock: Callable[[], datetime] = _utcnow
    session_factory: sessionmaker[Session] | None = field(default=None, repr=False)


def build_services(
    settings: Settings | None = None,
    directory: ScheduleDirectory | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Services:
    """Wire stores and services for the configured storage backend."""
    settings = settings or get_settings()
    directory = directory if directory is not None else InMemoryScheduleDirectory()
    emitter = EventEmitter()

    session_factory = None
    entry_store: TimeEntryStore
    swap_store: SwapRequestStore
    payroll_store: PayrollStore
    if settings.storage_backend == "sql":
        _, session_factory = init_db(settings.database_url)
        entry_store = SqlTimeEntryStore(session_factory)
        swap_store = SqlSwapRequestStore(session_factory)
        payroll_store = SqlPayrollStore(session_factory)
    elif settings.storage_backend == "memory":
        entry_store = InMemoryTimeEntryStore()
        swap_store = InMemorySwapRequestStore()
        payroll_store = InMemoryPayrollStore()
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")
    logger.info("Using %s storage backend", settings.storage_backend)

    ledger = TimeEntryLedger(
        entry_store,
        directory,
        verifier=GeoVerifier.from_settings(),
        emitter=emitter,
        clock=clock,
        default_radius_meters=settings.default_site_radius_meters,
    )
    engine = PayrollEngine(engine_version=settings.engine_version)
    branch_tz = ZoneInfo(settings.schedule_timezone)
    return Services(
        directory=directory,
        entry_store=entry_store,
        swap_store=swap_store,
        payroll_store=payroll_store,
        emitter=emitter,
        ledger=ledger,
        conflicts=ScheduleConflictChecker(directory, branch_tz),
        swaps=ShiftSwapService(
            directory, swap_store, emitter=emitter, clock=clock, tz=branch_tz
        ),
        payroll=PayrollRunService(payroll_store, entry_store, engine=engine, emitter=emitter),
        advances=SalaryAdvanceService(
            payroll_store, max_ratio=settings.max_advance_ratio, clock=clock
        ),
        clock=clock,
        session_factory=session_factory,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_actor(
    x_employee_id: Annotated[str | None, Header()] = None,
    x_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Extract the caller identity forwarded by the identity provider."""
    if not x_employee_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Employee-ID header is required",
        )
    try:
        employee_id = UUID(x_employee_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Employee-ID format",
        )
    try:
        role = Role((x_role or Role.EMPLOYEE.value).lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {x_role}",
        )
    return Actor(employee_id=employee_id, role=role)


def require(permission: Permission) -> Callable[[Actor], Actor]:
    """Dependency factory that rejects callers lacking ``permission``."""

    def check(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
        if not actor.has(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role.value}' lacks permission '{permission.value}'",
            )
        return actor

    return check


def forbid(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


# Type aliases for cleaner dependency injection
ServicesDep = Annotated[Services, Depends(get_services)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
