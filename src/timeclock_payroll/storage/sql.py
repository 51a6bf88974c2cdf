"""SQLAlchemy implementations of the store protocols.

Inserts rely on the partial unique indexes in ``models``; state changes are
guarded ``UPDATE ... WHERE status = ...`` statements whose row count tells
whether the precondition held. Each method runs in its own transaction.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from timeclock_payroll.errors import (
    ActiveEntryExists,
    AlreadyClockedOut,
    CorrectionAlreadyPending,
    CorrectionNotFound,
    CorrectionNotPending,
    InvalidTransitionError,
    NoActiveEntry,
    PayrollPeriodNotFound,
    SwapAlreadyPending,
    SwapRequestNotFound,
)
from timeclock_payroll.geo.verifier import Coordinate
from timeclock_payroll.payroll.types import (
    AdvanceStatus,
    Deductions,
    Earnings,
    PayrollCalculation,
    PayrollPeriod,
    PeriodStatus,
    Rates,
    SalaryAdvance,
)
from timeclock_payroll.scheduling.swaps import SwapRequest, SwapStatus
from timeclock_payroll.storage.models import (
    CorrectionRecord,
    PayrollCalculationRecord,
    PayrollPeriodRecord,
    SalaryAdvanceRecord,
    SwapRequestRecord,
    SwapScheduleClaim,
    TimeEntryRecord,
)
from timeclock_payroll.timekeeping.types import (
    ClockEvent,
    Correction,
    CorrectionStatus,
    CorrectionType,
    TimeEntry,
)

# ===== Row mapping =====


def _clock_event(record: TimeEntryRecord, side: str) -> ClockEvent | None:
    time = getattr(record, f"{side}_time")
    if time is None:
        return None
    lat = getattr(record, f"{side}_latitude")
    lng = getattr(record, f"{side}_longitude")
    return ClockEvent(
        time=time,
        location=Coordinate(lat, lng) if lat is not None and lng is not None else None,
        accuracy_meters=getattr(record, f"{side}_accuracy"),
        verified=bool(getattr(record, f"{side}_verified")),
        distance_meters=getattr(record, f"{side}_distance"),
    )


def _entry_from_record(record: TimeEntryRecord) -> TimeEntry:
    clock_in = _clock_event(record, "clock_in")
    assert clock_in is not None
    return TimeEntry(
        id=record.id,
        employee_id=record.employee_id,
        schedule_id=record.schedule_id,
        work_date=record.work_date,
        clock_in=clock_in,
        clock_out=_clock_event(record, "clock_out"),
        total_hours=record.total_hours,
        verified=record.verified,
        manual_entry=record.manual_entry,
        holiday=record.holiday,
        corrected_at=record.corrected_at,
    )


def _event_columns(event: ClockEvent | None, side: str) -> dict:
    if event is None:
        return {
            f"{side}_time": None,
            f"{side}_latitude": None,
            f"{side}_longitude": None,
            f"{side}_accuracy": None,
            f"{side}_distance": None,
            f"{side}_verified": None,
        }
    return {
        f"{side}_time": event.time,
        f"{side}_latitude": event.location.latitude if event.location else None,
        f"{side}_longitude": event.location.longitude if event.location else None,
        f"{side}_accuracy": event.accuracy_meters,
        f"{side}_distance": event.distance_meters,
        f"{side}_verified": event.verified,
    }


def _entry_columns(entry: TimeEntry) -> dict:
    return {
        "employee_id": entry.employee_id,
        "schedule_id": entry.schedule_id,
        "work_date": entry.work_date,
        **_event_columns(entry.clock_in, "clock_in"),
        **_event_columns(entry.clock_out, "clock_out"),
        "total_hours": entry.total_hours,
        "verified": entry.verified,
        "manual_entry": entry.manual_entry,
        "holiday": entry.holiday,
        "corrected_at": entry.corrected_at,
    }


def _correction_from_record(record: CorrectionRecord) -> Correction:
    return Correction(
        id=record.id,
        entry_id=record.entry_id,
        employee_id=record.employee_id,
        correction_type=CorrectionType(record.correction_type),
        reason=record.reason,
        requested_by=record.requested_by,
        requested_at=record.requested_at,
        requested_clock_in=record.requested_clock_in,
        requested_clock_out=record.requested_clock_out,
        status=CorrectionStatus(record.status),
        resolved_by=record.resolved_by,
        resolved_at=record.resolved_at,
        notes=record.notes,
    )


def _swap_from_record(record: SwapRequestRecord) -> SwapRequest:
    return SwapRequest(
        id=record.id,
        requester_id=record.requester_id,
        requester_schedule_id=record.requester_schedule_id,
        target_employee_id=record.target_employee_id,
        target_schedule_id=record.target_schedule_id,
        reason=record.reason,
        created_at=record.requested_at,
        status=SwapStatus(record.status),
        resolved_by=record.resolved_by,
        resolved_at=record.resolved_at,
        notes=record.notes,
    )


def _period_from_record(record: PayrollPeriodRecord) -> PayrollPeriod:
    return PayrollPeriod(
        id=record.id,
        start_date=record.start_date,
        end_date=record.end_date,
        status=PeriodStatus(record.status),
        name=record.name,
        cutoff_date=record.cutoff_date,
        pay_date=record.pay_date,
    )


def _calculation_from_record(record: PayrollCalculationRecord) -> PayrollCalculation:
    return PayrollCalculation(
        employee_id=record.employee_id,
        period_start=record.period_start,
        period_end=record.period_end,
        regular_hours=record.regular_hours,
        overtime_hours=record.overtime_hours,
        holiday_hours=record.holiday_hours,
        rates=Rates(record.regular_rate, record.overtime_rate, record.holiday_rate),
        earnings=Earnings(record.regular_pay, record.overtime_pay, record.holiday_pay),
        gross_pay=record.gross_pay,
        deductions=Deductions(
            tax=record.tax,
            social_security=record.social_security,
            advances=record.advances,
            other=record.other_deductions,
        ),
        total_deductions=record.total_deductions,
        net_pay=record.net_pay,
        calculation_id=record.id,
        inputs_fingerprint=record.inputs_fingerprint,
        advance_ids=tuple(UUID(a) for a in record.advance_ids),
    )


def _advance_from_record(record: SalaryAdvanceRecord) -> SalaryAdvance:
    return SalaryAdvance(
        id=record.id,
        employee_id=record.employee_id,
        amount=record.amount,
        status=AdvanceStatus(record.status),
        reason=record.reason,
        requested_at=record.requested_at,
        approved_at=record.approved_at,
        approved_by=record.approved_by,
    )


# ===== Stores =====


class SqlTimeEntryStore:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _active_id(self, employee_id: UUID) -> UUID | None:
        with self._session_factory() as session:
            return session.scalar(
                select(TimeEntryRecord.id).where(
                    TimeEntryRecord.employee_id == employee_id,
                    TimeEntryRecord.clock_out_time.is_(None),
                )
            )

    def insert_if_no_active_entry(self, entry: TimeEntry) -> TimeEntry:
        try:
            with self._session_factory.begin() as session:
                session.add(TimeEntryRecord(id=entry.id, **_entry_columns(entry)))
        except IntegrityError as e:
            raise ActiveEntryExists(entry.employee_id, self._active_id(entry.employee_id)) from e
        return entry

    def complete_entry_if_active(self, entry: TimeEntry) -> TimeEntry:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(TimeEntryRecord)
                .where(
                    TimeEntryRecord.id == entry.id,
                    TimeEntryRecord.clock_out_time.is_(None),
                )
                .values(**_entry_columns(entry))
            )
            if result.rowcount == 0:
                if session.get(TimeEntryRecord, entry.id) is None:
                    raise NoActiveEntry(entry.id)
                raise AlreadyClockedOut(entry.id)
        return entry

    def get_entry(self, entry_id: UUID) -> TimeEntry | None:
        with self._session_factory() as session:
            record = session.get(TimeEntryRecord, entry_id)
            return _entry_from_record(record) if record else None

    def get_active_entry(self, employee_id: UUID) -> TimeEntry | None:
        with self._session_factory() as session:
            record = session.scalar(
                select(TimeEntryRecord).where(
                    TimeEntryRecord.employee_id == employee_id,
                    TimeEntryRecord.clock_out_time.is_(None),
                )
            )
            return _entry_from_record(record) if record else None

    def list_entries(
        self,
        employee_id: UUID | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TimeEntry]:
        query = select(TimeEntryRecord).order_by(
            TimeEntryRecord.clock_in_time, TimeEntryRecord.id
        )
        if employee_id is not None:
            query = query.where(TimeEntryRecord.employee_id == employee_id)
        if start is not None:
            query = query.where(TimeEntryRecord.work_date >= start)
        if end is not None:
            query = query.where(TimeEntryRecord.work_date <= end)
        with self._session_factory() as session:
            return [_entry_from_record(r) for r in session.scalars(query)]

    def insert_if_no_pending_correction(self, correction: Correction) -> Correction:
        try:
            with self._session_factory.begin() as session:
                session.add(
                    CorrectionRecord(
                        id=correction.id,
                        entry_id=correction.entry_id,
                        employee_id=correction.employee_id,
                        correction_type=correction.correction_type.value,
                        reason=correction.reason,
                        requested_by=correction.requested_by,
                        requested_at=correction.requested_at,
                        requested_clock_in=correction.requested_clock_in,
                        requested_clock_out=correction.requested_clock_out,
                        status=correction.status.value,
                    )
                )
        except IntegrityError as e:
            with self._session_factory() as session:
                pending_id = session.scalar(
                    select(CorrectionRecord.id).where(
                        CorrectionRecord.entry_id == correction.entry_id,
                        CorrectionRecord.status == CorrectionStatus.PENDING.value,
                    )
                )
            raise CorrectionAlreadyPending(correction.entry_id, pending_id) from e
        return correction

    def get_correction(self, correction_id: UUID) -> Correction | None:
        with self._session_factory() as session:
            record = session.get(CorrectionRecord, correction_id)
            return _correction_from_record(record) if record else None

    def list_corrections(
        self,
        employee_id: UUID | None = None,
        status: CorrectionStatus | None = None,
    ) -> list[Correction]:
        query = select(CorrectionRecord).order_by(
            CorrectionRecord.requested_at, CorrectionRecord.id
        )
        if employee_id is not None:
            query = query.where(CorrectionRecord.employee_id == employee_id)
        if status is not None:
            query = query.where(CorrectionRecord.status == status.value)
        with self._session_factory() as session:
            return [_correction_from_record(r) for r in session.scalars(query)]

    def resolve_correction_if_pending(
        self,
        correction: Correction,
        updated_entry: TimeEntry | None = None,
        delete_entry: bool = False,
    ) -> Correction:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(CorrectionRecord)
                .where(
                    CorrectionRecord.id == correction.id,
                    CorrectionRecord.status == CorrectionStatus.PENDING.value,
                )
                .values(
                    status=correction.status.value,
                    resolved_by=correction.resolved_by,
                    resolved_at=correction.resolved_at,
                    notes=correction.notes,
                )
            )
            if result.rowcount == 0:
                stored = session.get(CorrectionRecord, correction.id)
                if stored is None:
                    raise CorrectionNotFound(correction.id)
                raise CorrectionNotPending(correction.id, stored.status)

            if delete_entry:
                session.execute(
                    delete(TimeEntryRecord).where(TimeEntryRecord.id == correction.entry_id)
                )
            elif updated_entry is not None:
                session.execute(
                    update(TimeEntryRecord)
                    .where(TimeEntryRecord.id == updated_entry.id)
                    .values(**_entry_columns(updated_entry))
                )
        return correction


class SqlSwapRequestStore:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def insert_if_no_pending_swap(self, swap: SwapRequest) -> SwapRequest:
        try:
            with self._session_factory.begin() as session:
                session.add(
                    SwapRequestRecord(
                        id=swap.id,
                        requester_id=swap.requester_id,
                        requester_schedule_id=swap.requester_schedule_id,
                        target_employee_id=swap.target_employee_id,
                        target_schedule_id=swap.target_schedule_id,
                        reason=swap.reason,
                        requested_at=swap.created_at,
                        status=swap.status.value,
                    )
                )
                session.flush()
                for schedule_id in swap.schedule_ids:
                    session.add(SwapScheduleClaim(schedule_id=schedule_id, swap_id=swap.id))
        except IntegrityError as e:
            raise SwapAlreadyPending(self._claimed_schedule(swap)) from e
        return swap

    def _claimed_schedule(self, swap: SwapRequest) -> UUID:
        with self._session_factory() as session:
            claimed = session.scalar(
                select(SwapScheduleClaim.schedule_id).where(
                    SwapScheduleClaim.schedule_id.in_(swap.schedule_ids)
                )
            )
        return claimed or swap.requester_schedule_id

    def get_swap(self, swap_id: UUID) -> SwapRequest | None:
        with self._session_factory() as session:
            record = session.get(SwapRequestRecord, swap_id)
            return _swap_from_record(record) if record else None

    def list_swaps(
        self,
        employee_id: UUID | None = None,
        status: SwapStatus | None = None,
    ) -> list[SwapRequest]:
        query = select(SwapRequestRecord).order_by(
            SwapRequestRecord.requested_at, SwapRequestRecord.id
        )
        if employee_id is not None:
            query = query.where(
                (SwapRequestRecord.requester_id == employee_id)
                | (SwapRequestRecord.target_employee_id == employee_id)
            )
        if status is not None:
            query = query.where(SwapRequestRecord.status == status.value)
        with self._session_factory() as session:
            return [_swap_from_record(r) for r in session.scalars(query)]

    def resolve_swap_if_pending(self, swap: SwapRequest) -> SwapRequest:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(SwapRequestRecord)
                .where(
                    SwapRequestRecord.id == swap.id,
                    SwapRequestRecord.status == SwapStatus.PENDING.value,
                )
                .values(
                    status=swap.status.value,
                    resolved_by=swap.resolved_by,
                    resolved_at=swap.resolved_at,
                    notes=swap.notes,
                )
            )
            if result.rowcount == 0:
                stored = session.get(SwapRequestRecord, swap.id)
                if stored is None:
                    raise SwapRequestNotFound(swap.id)
                raise InvalidTransitionError(
                    stored.status, swap.status.value, "swap already resolved"
                )
            session.execute(delete(SwapScheduleClaim).where(SwapScheduleClaim.swap_id == swap.id))
        return swap


class SqlPayrollStore:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def add_period(self, period: PayrollPeriod) -> PayrollPeriod:
        with self._session_factory.begin() as session:
            session.add(
                PayrollPeriodRecord(
                    id=period.id,
                    start_date=period.start_date,
                    end_date=period.end_date,
                    status=period.status.value,
                    name=period.name,
                    cutoff_date=period.cutoff_date,
                    pay_date=period.pay_date,
                )
            )
        return period

    def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        with self._session_factory() as session:
            record = session.get(PayrollPeriodRecord, period_id)
            return _period_from_record(record) if record else None

    def list_periods(self) -> list[PayrollPeriod]:
        with self._session_factory() as session:
            records = session.scalars(
                select(PayrollPeriodRecord).order_by(
                    PayrollPeriodRecord.start_date.desc(), PayrollPeriodRecord.id.desc()
                )
            )
            return [_period_from_record(r) for r in records]

    def transition_period(
        self, period_id: UUID, from_status: PeriodStatus, to_status: PeriodStatus
    ) -> PayrollPeriod:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(PayrollPeriodRecord)
                .where(
                    PayrollPeriodRecord.id == period_id,
                    PayrollPeriodRecord.status == from_status.value,
                )
                .values(status=to_status.value)
            )
            record = session.get(PayrollPeriodRecord, period_id, populate_existing=True)
            if record is None:
                raise PayrollPeriodNotFound(period_id)
            if result.rowcount == 0:
                raise InvalidTransitionError(
                    record.status,
                    to_status.value,
                    f"expected period to be '{from_status.value}'",
                )
            return _period_from_record(record)

    def replace_calculations(
        self, period_id: UUID, calculations: list[PayrollCalculation]
    ) -> None:
        with self._session_factory.begin() as session:
            session.execute(
                delete(PayrollCalculationRecord).where(
                    PayrollCalculationRecord.period_id == period_id
                )
            )
            for c in calculations:
                session.add(
                    PayrollCalculationRecord(
                        id=c.calculation_id,
                        period_id=period_id,
                        employee_id=c.employee_id,
                        period_start=c.period_start,
                        period_end=c.period_end,
                        regular_hours=c.regular_hours,
                        overtime_hours=c.overtime_hours,
                        holiday_hours=c.holiday_hours,
                        regular_rate=c.rates.regular,
                        overtime_rate=c.rates.overtime,
                        holiday_rate=c.rates.holiday,
                        regular_pay=c.earnings.regular,
                        overtime_pay=c.earnings.overtime,
                        holiday_pay=c.earnings.holiday,
                        gross_pay=c.gross_pay,
                        tax=c.deductions.tax,
                        social_security=c.deductions.social_security,
                        advances=c.deductions.advances,
                        other_deductions=c.deductions.other,
                        total_deductions=c.total_deductions,
                        net_pay=c.net_pay,
                        inputs_fingerprint=c.inputs_fingerprint,
                        advance_ids=[str(a) for a in c.advance_ids],
                    )
                )

    def list_calculations(self, period_id: UUID) -> list[PayrollCalculation]:
        with self._session_factory() as session:
            records = session.scalars(
                select(PayrollCalculationRecord)
                .where(PayrollCalculationRecord.period_id == period_id)
                .order_by(PayrollCalculationRecord.employee_id)
            )
            return [_calculation_from_record(r) for r in records]

    def get_calculation(
        self, period_id: UUID, employee_id: UUID
    ) -> PayrollCalculation | None:
        with self._session_factory() as session:
            record = session.scalar(
                select(PayrollCalculationRecord).where(
                    PayrollCalculationRecord.period_id == period_id,
                    PayrollCalculationRecord.employee_id == employee_id,
                )
            )
            return _calculation_from_record(record) if record else None

    def add_advance(self, advance: SalaryAdvance) -> SalaryAdvance:
        with self._session_factory.begin() as session:
            session.add(
                SalaryAdvanceRecord(
                    id=advance.id,
                    employee_id=advance.employee_id,
                    amount=advance.amount,
                    status=advance.status.value,
                    reason=advance.reason,
                    requested_at=advance.requested_at,
                    approved_at=advance.approved_at,
                    approved_by=advance.approved_by,
                )
            )
        return advance

    def get_advance(self, advance_id: UUID) -> SalaryAdvance | None:
        with self._session_factory() as session:
            record = session.get(SalaryAdvanceRecord, advance_id)
            return _advance_from_record(record) if record else None

    def list_advances(
        self,
        employee_id: UUID | None = None,
        status: AdvanceStatus | None = None,
    ) -> list[SalaryAdvance]:
        query = select(SalaryAdvanceRecord).order_by(SalaryAdvanceRecord.id)
        if employee_id is not None:
            query = query.where(SalaryAdvanceRecord.employee_id == employee_id)
        if status is not None:
            query = query.where(SalaryAdvanceRecord.status == status.value)
        with self._session_factory() as session:
            return [_advance_from_record(r) for r in session.scalars(query)]

    def update_advance_if_status(
        self, advance: SalaryAdvance, expected: AdvanceStatus
    ) -> SalaryAdvance:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(SalaryAdvanceRecord)
                .where(
                    SalaryAdvanceRecord.id == advance.id,
                    SalaryAdvanceRecord.status == expected.value,
                )
                .values(
                    status=advance.status.value,
                    approved_at=advance.approved_at,
                    approved_by=advance.approved_by,
                )
            )
            if result.rowcount == 0:
                stored = session.get(SalaryAdvanceRecord, advance.id)
                raise InvalidTransitionError(
                    stored.status if stored else "missing",
                    advance.status.value,
                    f"expected advance to be '{expected.value}'",
                )
        return advance
