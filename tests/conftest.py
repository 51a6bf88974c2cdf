"""Pytest fixtures for timeclock payroll tests."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

import pytest

from timeclock_payroll.events import DomainEvent, EventEmitter
from timeclock_payroll.geo import Coordinate, GeoVerifier, LocationSample, Site
from timeclock_payroll.geo.verifier import EARTH_RADIUS_METERS
from timeclock_payroll.payroll.types import AdvanceStatus, SalaryAdvance
from timeclock_payroll.scheduling import InMemoryScheduleDirectory, ShiftInterval
from timeclock_payroll.storage.memory import (
    InMemoryPayrollStore,
    InMemorySwapRequestStore,
    InMemoryTimeEntryStore,
)
from timeclock_payroll.timekeeping import ClockEvent, TimeEntry, TimeEntryLedger

# Bangkok branch used throughout
BRANCH_CENTER = Coordinate(13.7563, 100.5018)
BRANCH_ID = UUID("00000000-0000-4000-8000-000000000001")
SITE_RADIUS = 50.0

NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def north_of():
    """A point ``meters`` due north of ``origin`` on the haversine sphere."""

    def offset(origin: Coordinate, meters: float) -> Coordinate:
        return Coordinate(
            origin.latitude + math.degrees(meters / EARTH_RADIUS_METERS), origin.longitude
        )

    return offset


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def employee_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_employee_id() -> UUID:
    return uuid4()


@pytest.fixture
def site() -> Site:
    return Site(center=BRANCH_CENTER, radius_meters=SITE_RADIUS, name="Bangkok")


@pytest.fixture
def directory(site: Site) -> InMemoryScheduleDirectory:
    directory = InMemoryScheduleDirectory()
    directory.add_site(BRANCH_ID, site)
    return directory


@pytest.fixture
def shift(directory: InMemoryScheduleDirectory, employee_id: UUID) -> ShiftInterval:
    """A 09:00-17:00 shift on 2024-01-15 at the Bangkok branch."""
    return directory.add_shift(
        ShiftInterval(
            schedule_id=uuid4(),
            employee_id=employee_id,
            shift_date=date(2024, 1, 15),
            start_time=time(9, 0),
            end_time=time(17, 0),
            branch_id=BRANCH_ID,
        )
    )


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def events(emitter: EventEmitter) -> list[DomainEvent]:
    """Every event emitted during the test, in order."""
    received: list[DomainEvent] = []
    emitter.on_all(received.append)
    return received


@pytest.fixture
def verifier() -> GeoVerifier:
    return GeoVerifier(max_accuracy_meters=100.0)


@pytest.fixture
def entry_store() -> InMemoryTimeEntryStore:
    return InMemoryTimeEntryStore()


@pytest.fixture
def swap_store() -> InMemorySwapRequestStore:
    return InMemorySwapRequestStore()


@pytest.fixture
def payroll_store() -> InMemoryPayrollStore:
    return InMemoryPayrollStore()


@pytest.fixture
def ledger(
    entry_store: InMemoryTimeEntryStore,
    directory: InMemoryScheduleDirectory,
    verifier: GeoVerifier,
    emitter: EventEmitter,
    clock: FakeClock,
) -> TimeEntryLedger:
    return TimeEntryLedger(
        entry_store,
        directory,
        verifier=verifier,
        emitter=emitter,
        clock=clock,
        default_radius_meters=SITE_RADIUS,
    )


@pytest.fixture
def sample_at(clock: FakeClock):
    """Build a location sample captured now."""

    def make(coords: Coordinate, accuracy_meters: float = 15.0) -> LocationSample:
        return LocationSample(coords=coords, accuracy_meters=accuracy_meters, captured_at=clock())

    return make


@pytest.fixture
def make_entry():
    """Build a completed time entry directly, bypassing the ledger."""

    def make(
        employee_id: UUID,
        work_date: date,
        hours: str | Decimal,
        verified: bool = True,
        holiday: bool = False,
        active: bool = False,
    ) -> TimeEntry:
        total = Decimal(hours).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        start = datetime.combine(work_date, time(8, 0), tzinfo=timezone.utc)
        clock_out = None
        if not active:
            clock_out = ClockEvent(time=start + timedelta(hours=float(total)), verified=verified)
        return TimeEntry(
            id=uuid4(),
            employee_id=employee_id,
            schedule_id=uuid4(),
            work_date=work_date,
            clock_in=ClockEvent(time=start, verified=verified),
            clock_out=clock_out,
            total_hours=None if active else total,
            verified=verified,
            holiday=holiday,
        )

    return make


@pytest.fixture
def make_advance():
    def make(
        employee_id: UUID,
        amount: str,
        status: AdvanceStatus = AdvanceStatus.APPROVED,
        approved_on: date | None = date(2024, 1, 16),
    ) -> SalaryAdvance:
        approved_at = None
        if approved_on is not None and status != AdvanceStatus.PENDING:
            approved_at = datetime.combine(approved_on, time(12, 0), tzinfo=timezone.utc)
        return SalaryAdvance(
            id=uuid4(),
            employee_id=employee_id,
            amount=Decimal(amount),
            status=status,
            approved_at=approved_at,
        )

    return make
