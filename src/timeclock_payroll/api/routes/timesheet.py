"""Timesheet endpoints: clock events and corrections."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from timeclock_payroll.api.dependencies import (
    CurrentActor,
    ServicesDep,
    forbid,
    require,
)
from timeclock_payroll.api.schemas import (
    ActiveEntryResponse,
    ClockInRequest,
    ClockOutRequest,
    CorrectionCreate,
    CorrectionResolve,
    CorrectionResponse,
    ErrorResponse,
    TimeEntryResponse,
)
from timeclock_payroll.errors import EntryNotFound
from timeclock_payroll.permissions import (
    Actor,
    Permission,
    can_act_for,
    can_request_correction,
)
from timeclock_payroll.timekeeping.types import CorrectionStatus

router = APIRouter(prefix="/timesheet", tags=["timesheet"])

ClockingActor = Annotated[Actor, Depends(require(Permission.CLOCK_OWN))]


# ============================================================================
# Clock events
# ============================================================================


@router.post(
    "/clock-in",
    response_model=TimeEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def clock_in(
    services: ServicesDep,
    actor: ClockingActor,
    payload: ClockInRequest,
) -> TimeEntryResponse:
    """Clock the caller in for one of their scheduled shifts."""
    now = services.clock()
    entry = services.ledger.clock_in(
        actor.employee_id,
        payload.schedule_id,
        payload.location.to_sample(now) if payload.location else None,
        allow_unverified=payload.allow_unverified,
        reference=payload.reference.to_coordinate() if payload.reference else None,
    )
    return TimeEntryResponse.model_validate(entry)


@router.post(
    "/clock-out",
    response_model=TimeEntryResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def clock_out(
    services: ServicesDep,
    actor: ClockingActor,
    payload: ClockOutRequest,
) -> TimeEntryResponse:
    """Close the caller's active time entry."""
    entry = services.entry_store.get_entry(payload.entry_id)
    if entry is not None and entry.employee_id != actor.employee_id:
        raise forbid("Cannot clock out another employee's entry")
    now = services.clock()
    completed = services.ledger.clock_out(
        payload.entry_id,
        payload.location.to_sample(now) if payload.location else None,
        allow_unverified=payload.allow_unverified,
        reference=payload.reference.to_coordinate() if payload.reference else None,
    )
    return TimeEntryResponse.model_validate(completed)


@router.get("/active", response_model=ActiveEntryResponse)
def active_entry(
    services: ServicesDep,
    actor: CurrentActor,
    employee_id: UUID | None = None,
) -> ActiveEntryResponse:
    """Get the open time entry of the caller (or of ``employee_id``)."""
    employee_id = employee_id or actor.employee_id
    if not can_act_for(actor, employee_id):
        raise forbid("Cannot view another employee's time entries")
    entry = services.ledger.active_entry(employee_id)
    return ActiveEntryResponse(
        entry=TimeEntryResponse.model_validate(entry) if entry else None
    )


@router.get("/entries", response_model=list[TimeEntryResponse])
def list_entries(
    services: ServicesDep,
    actor: CurrentActor,
    employee_id: UUID | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[TimeEntryResponse]:
    """List time entries by work date, oldest first."""
    employee_id = employee_id or actor.employee_id
    if not can_act_for(actor, employee_id):
        raise forbid("Cannot view another employee's time entries")
    entries = services.entry_store.list_entries(employee_id, start, end)
    return [TimeEntryResponse.model_validate(e) for e in entries]


# ============================================================================
# Corrections
# ============================================================================


@router.post(
    "/corrections",
    response_model=CorrectionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def request_correction(
    services: ServicesDep,
    actor: CurrentActor,
    payload: CorrectionCreate,
) -> CorrectionResponse:
    """Request a change to a completed time entry, or its deletion."""
    entry = services.entry_store.get_entry(payload.entry_id)
    if entry is None:
        raise EntryNotFound(payload.entry_id)
    if not can_request_correction(actor, entry.employee_id):
        raise forbid("Cannot request corrections for another employee's entries")
    correction = services.ledger.request_correction(
        payload.entry_id,
        payload.correction_type,
        payload.reason,
        actor.employee_id,
        requested_clock_in=payload.requested_clock_in,
        requested_clock_out=payload.requested_clock_out,
    )
    return CorrectionResponse.model_validate(correction)


@router.get("/corrections", response_model=list[CorrectionResponse])
def list_corrections(
    services: ServicesDep,
    actor: CurrentActor,
    employee_id: UUID | None = None,
    status_filter: Annotated[CorrectionStatus | None, Query(alias="status")] = None,
) -> list[CorrectionResponse]:
    """List corrections; callers without team access only see their own."""
    if employee_id is None and not actor.has(Permission.VIEW_TEAM_TIMESHEETS):
        employee_id = actor.employee_id
    if employee_id is not None and not can_act_for(actor, employee_id):
        raise forbid("Cannot view another employee's corrections")
    corrections = services.entry_store.list_corrections(employee_id, status_filter)
    return [CorrectionResponse.model_validate(c) for c in corrections]


@router.post(
    "/corrections/{correction_id}/resolve",
    response_model=CorrectionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def resolve_correction(
    services: ServicesDep,
    actor: Annotated[Actor, Depends(require(Permission.RESOLVE_CORRECTION))],
    correction_id: Annotated[UUID, Path()],
    payload: CorrectionResolve,
) -> CorrectionResponse:
    """Approve or reject a pending correction."""
    correction = services.ledger.resolve_correction(
        correction_id, payload.decision, actor.employee_id, notes=payload.notes
    )
    return CorrectionResponse.model_validate(correction)
