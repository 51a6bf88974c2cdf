"""Time entry ledger: clock-in/out and correction approval.

Entry lifecycle:
- clock_in creates an ACTIVE entry (at most one per employee)
- clock_out closes it and computes total hours
- an approved correction rewrites the times and marks the entry unverified,
  or deletes it

Uniqueness rules (one active entry per employee, one pending correction per
entry) are enforced by the store's conditional writes; the checks made here
beforehand only give earlier, clearer errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable
from uuid import UUID, uuid4

from timeclock_payroll.config import get_settings
from timeclock_payroll.errors import (
    ActiveEntryExists,
    AlreadyClockedOut,
    CorrectionNotFound,
    CorrectionNotPending,
    EntryNotCompleted,
    EntryNotFound,
    InvalidCorrection,
    LocationRejected,
    NoActiveEntry,
    ScheduleNotAssigned,
    ScheduleNotFound,
)
from timeclock_payroll.events import (
    ClockedIn,
    ClockedOut,
    ClockInRejected,
    CorrectionRequested,
    CorrectionResolved,
    EventEmitter,
    EventMetadata,
)
from timeclock_payroll.geo import Coordinate, GeoVerifier, LocationSample, Rejected, Site
from timeclock_payroll.timekeeping.types import (
    ClockEvent,
    Correction,
    CorrectionDecision,
    CorrectionStatus,
    CorrectionType,
    TimeEntry,
    compute_total_hours,
)

if TYPE_CHECKING:
    from timeclock_payroll.scheduling.directory import ScheduleDirectory
    from timeclock_payroll.storage.protocols import TimeEntryStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _CheckedEvent:
    event: ClockEvent
    manual: bool


class TimeEntryLedger:
    """Records clock events and applies approved corrections."""

    def __init__(
        self,
        store: TimeEntryStore,
        directory: ScheduleDirectory,
        verifier: GeoVerifier | None = None,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = _utcnow,
        default_radius_meters: float | None = None,
    ):
        self.store = store
        self.directory = directory
        self.verifier = verifier or GeoVerifier.from_settings()
        self.emitter = emitter or EventEmitter()
        self.clock = clock
        if default_radius_meters is None:
            default_radius_meters = get_settings().default_site_radius_meters
        self.default_radius_meters = default_radius_meters

    # ===== Clock events =====

    def clock_in(
        self,
        employee_id: UUID,
        schedule_id: UUID,
        sample: LocationSample | None = None,
        *,
        allow_unverified: bool = False,
        reference: Coordinate | None = None,
    ) -> TimeEntry:
        """Start a time entry for a scheduled shift.

        Args:
            employee_id: Employee clocking in
            schedule_id: Shift being worked; must belong to the employee
            sample: Device location, if the device supplied one
            allow_unverified: Record the entry even if verification fails;
                it is then flagged as a manual, unverified entry
            reference: Optional coarse position for spoofing detection

        Raises:
            ScheduleNotFound, ScheduleNotAssigned, ActiveEntryExists,
            LocationRejected
        """
        shift = self.directory.get_shift(schedule_id)
        if shift is None:
            raise ScheduleNotFound(schedule_id)
        if shift.employee_id != employee_id:
            raise ScheduleNotAssigned(schedule_id, employee_id)

        active = self.store.get_active_entry(employee_id)
        if active is not None:
            raise ActiveEntryExists(employee_id, active.id)

        checked = self._check_location(
            employee_id, schedule_id, "clock_in", sample, allow_unverified, reference
        )
        entry = self.store.insert_if_no_active_entry(
            TimeEntry(
                id=uuid4(),
                employee_id=employee_id,
                schedule_id=schedule_id,
                work_date=shift.shift_date,
                clock_in=checked.event,
                verified=checked.event.verified,
                manual_entry=checked.manual,
                holiday=shift.is_holiday,
            )
        )

        logger.info(
            "Employee %s clocked in (entry %s, verified=%s)",
            employee_id,
            entry.id,
            entry.verified,
        )
        self.emitter.emit(
            ClockedIn(
                metadata=self._metadata(employee_id, "employee"),
                entry_id=entry.id,
                employee_id=employee_id,
                schedule_id=schedule_id,
                clock_in=entry.clock_in.time,
                verified=entry.verified,
                manual_entry=entry.manual_entry,
            )
        )
        return entry

    def clock_out(
        self,
        entry_id: UUID,
        sample: LocationSample | None = None,
        *,
        allow_unverified: bool = False,
        reference: Coordinate | None = None,
    ) -> TimeEntry:
        """Close an active entry.

        The entry stays verified only if both clock events verified.

        Raises:
            NoActiveEntry, AlreadyClockedOut, LocationRejected, InvalidInterval
        """
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise NoActiveEntry(entry_id)
        if not entry.is_active:
            raise AlreadyClockedOut(entry_id)

        checked = self._check_location(
            entry.employee_id,
            entry.schedule_id,
            "clock_out",
            sample,
            allow_unverified,
            reference,
        )
        total_hours = compute_total_hours(
            entry.clock_in.time, checked.event.time, entry_id=entry.id
        )
        completed = self.store.complete_entry_if_active(
            replace(
                entry,
                clock_out=checked.event,
                total_hours=total_hours,
                verified=entry.clock_in.verified and checked.event.verified,
                manual_entry=entry.manual_entry or checked.manual,
            )
        )

        logger.info(
            "Employee %s clocked out (entry %s, %s hours)",
            completed.employee_id,
            completed.id,
            total_hours,
        )
        self.emitter.emit(
            ClockedOut(
                metadata=self._metadata(completed.employee_id, "employee"),
                entry_id=completed.id,
                employee_id=completed.employee_id,
                clock_out=checked.event.time,
                total_hours=total_hours,
                verified=completed.verified,
            )
        )
        return completed

    def _site_for(self, schedule_id: UUID) -> Site:
        site = self.directory.site_for(schedule_id)
        if site is None:
            return Site(center=None, radius_meters=self.default_radius_meters)
        return site

    def _check_location(
        self,
        employee_id: UUID,
        schedule_id: UUID,
        action: str,
        sample: LocationSample | None,
        allow_unverified: bool,
        reference: Coordinate | None,
    ) -> _CheckedEvent:
        now = self.clock()
        site = self._site_for(schedule_id)

        if sample is None:
            # No device reading: exempt sites still verify.
            return _CheckedEvent(
                ClockEvent(time=now, verified=not site.is_geofenced),
                manual=allow_unverified,
            )

        outcome = self.verifier.verify(sample, site, reference)
        if isinstance(outcome, Rejected):
            logger.warning(
                "Location rejected on %s for employee %s: %s "
                "(distance=%s, accuracy=%s)",
                action,
                employee_id,
                outcome.reason.value,
                outcome.distance_meters,
                outcome.accuracy_meters,
            )
            self.emitter.emit(
                ClockInRejected(
                    metadata=self._metadata(employee_id, "employee"),
                    employee_id=employee_id,
                    schedule_id=schedule_id,
                    action=action,
                    reason=outcome.reason.value,
                    distance_meters=outcome.distance_meters,
                    accuracy_meters=outcome.accuracy_meters,
                )
            )
            if not allow_unverified:
                raise LocationRejected(outcome)
            return _CheckedEvent(
                ClockEvent(
                    time=now,
                    location=sample.coords,
                    accuracy_meters=sample.accuracy_meters,
                    verified=False,
                    distance_meters=outcome.distance_meters,
                ),
                manual=True,
            )

        return _CheckedEvent(
            ClockEvent(
                time=now,
                location=sample.coords,
                accuracy_meters=sample.accuracy_meters,
                verified=True,
                distance_meters=outcome.distance_meters,
            ),
            manual=False,
        )

    # ===== Corrections =====

    def request_correction(
        self,
        entry_id: UUID,
        correction_type: CorrectionType,
        reason: str,
        requested_by: UUID,
        requested_clock_in: datetime | None = None,
        requested_clock_out: datetime | None = None,
    ) -> Correction:
        """Ask for a completed entry's times to be changed or the entry deleted.

        Raises:
            EntryNotFound, EntryNotCompleted, InvalidCorrection,
            InvalidInterval, CorrectionAlreadyPending
        """
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        if entry.is_active:
            raise EntryNotCompleted(entry_id)
        if not reason or not reason.strip():
            raise InvalidCorrection("A reason is required", entry_id=entry_id)

        if correction_type == CorrectionType.DELETE:
            requested_clock_in = requested_clock_out = None
        else:
            if correction_type.needs_clock_in and requested_clock_in is None:
                raise InvalidCorrection(
                    f"{correction_type.value} correction requires a clock-in time",
                    entry_id=entry_id,
                )
            if correction_type.needs_clock_out and requested_clock_out is None:
                raise InvalidCorrection(
                    f"{correction_type.value} correction requires a clock-out time",
                    entry_id=entry_id,
                )
            if not correction_type.needs_clock_in:
                requested_clock_in = None
            if not correction_type.needs_clock_out:
                requested_clock_out = None
            for requested in (requested_clock_in, requested_clock_out):
                if requested is not None and requested.utcoffset() is None:
                    raise InvalidCorrection(
                        "Requested times must carry a UTC offset", entry_id=entry_id
                    )
            self._corrected_times(entry, requested_clock_in, requested_clock_out)

        correction = self.store.insert_if_no_pending_correction(
            Correction(
                id=uuid4(),
                entry_id=entry.id,
                employee_id=entry.employee_id,
                correction_type=correction_type,
                reason=reason.strip(),
                requested_by=requested_by,
                requested_at=self.clock(),
                requested_clock_in=requested_clock_in,
                requested_clock_out=requested_clock_out,
            )
        )

        logger.info(
            "Correction %s (%s) requested for entry %s by %s",
            correction.id,
            correction_type.value,
            entry_id,
            requested_by,
        )
        self.emitter.emit(
            CorrectionRequested(
                metadata=self._metadata(requested_by, "employee"),
                correction_id=correction.id,
                entry_id=entry.id,
                employee_id=entry.employee_id,
                correction_type=correction_type.value,
                reason=correction.reason,
            )
        )
        return correction

    def resolve_correction(
        self,
        correction_id: UUID,
        decision: CorrectionDecision,
        actor_id: UUID,
        notes: str | None = None,
    ) -> Correction:
        """Approve or reject a pending correction.

        Approving a time correction recomputes total hours from the new time
        paired with the entry's other, unchanged side and marks the entry
        unverified. Approving a DELETE removes the entry. Rejecting changes
        only the correction and requires notes.

        Raises:
            CorrectionNotFound, CorrectionNotPending, InvalidCorrection,
            InvalidInterval, EntryNotFound
        """
        correction = self.store.get_correction(correction_id)
        if correction is None:
            raise CorrectionNotFound(correction_id)
        if not correction.is_pending:
            raise CorrectionNotPending(correction_id, correction.status.value)

        now = self.clock()

        if decision == CorrectionDecision.REJECT:
            if not notes or not notes.strip():
                raise InvalidCorrection(
                    "A reason is required when rejecting a correction",
                    correction_id=correction_id,
                )
            resolved = self.store.resolve_correction_if_pending(
                replace(
                    correction,
                    status=CorrectionStatus.REJECTED,
                    resolved_by=actor_id,
                    resolved_at=now,
                    notes=notes.strip(),
                )
            )
        else:
            entry = self.store.get_entry(correction.entry_id)
            if entry is None:
                raise EntryNotFound(correction.entry_id)

            approved = replace(
                correction,
                status=CorrectionStatus.APPROVED,
                resolved_by=actor_id,
                resolved_at=now,
                notes=notes,
            )
            if correction.correction_type == CorrectionType.DELETE:
                resolved = self.store.resolve_correction_if_pending(
                    approved, delete_entry=True
                )
            else:
                updated = self._apply_correction(entry, correction, now)
                resolved = self.store.resolve_correction_if_pending(
                    approved, updated_entry=updated
                )

        logger.info(
            "Correction %s %s by %s", correction_id, resolved.status.value, actor_id
        )
        self.emitter.emit(
            CorrectionResolved(
                metadata=self._metadata(actor_id, "manager"),
                correction_id=resolved.id,
                entry_id=resolved.entry_id,
                employee_id=resolved.employee_id,
                status=resolved.status.value,
                resolved_by=actor_id,
                notes=resolved.notes,
            )
        )
        return resolved

    def _corrected_times(
        self,
        entry: TimeEntry,
        clock_in: datetime | None,
        clock_out: datetime | None,
    ) -> tuple[datetime, datetime]:
        new_in = clock_in or entry.clock_in.time
        if clock_out is not None:
            new_out = clock_out
        elif entry.clock_out is not None:
            new_out = entry.clock_out.time
        else:
            raise EntryNotCompleted(entry.id)
        compute_total_hours(new_in, new_out, entry_id=entry.id)
        return new_in, new_out

    def _apply_correction(
        self, entry: TimeEntry, correction: Correction, now: datetime
    ) -> TimeEntry:
        new_in, new_out = self._corrected_times(
            entry, correction.requested_clock_in, correction.requested_clock_out
        )
        clock_in = entry.clock_in
        if correction.requested_clock_in is not None:
            clock_in = ClockEvent(time=new_in, verified=False)
        clock_out = entry.clock_out
        if correction.requested_clock_out is not None:
            clock_out = ClockEvent(time=new_out, verified=False)

        return replace(
            entry,
            clock_in=clock_in,
            clock_out=clock_out,
            total_hours=compute_total_hours(new_in, new_out, entry_id=entry.id),
            verified=False,
            corrected_at=now,
        )

    # ===== Queries =====

    def active_entry(self, employee_id: UUID) -> TimeEntry | None:
        return self.store.get_active_entry(employee_id)

    def _metadata(self, actor_id: UUID, actor_type: str) -> EventMetadata:
        return EventMetadata.create(
            actor_id=actor_id, actor_type=actor_type, source_service="timekeeping"
        )
