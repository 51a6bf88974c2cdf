"""Schedule conflict and shift swap endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from timeclock_payroll.api.dependencies import CurrentActor, ServicesDep, forbid, require
from timeclock_payroll.api.schemas import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    ErrorResponse,
    ShiftResponse,
    SwapCreate,
    SwapResolve,
    SwapResponse,
)
from timeclock_payroll.permissions import Actor, Permission, can_act_for
from timeclock_payroll.scheduling.swaps import SwapStatus

schedules_router = APIRouter(prefix="/schedules", tags=["schedules"])
shift_swaps_router = APIRouter(prefix="/shift-swaps", tags=["shift-swaps"])


@schedules_router.post(
    "/conflicts",
    response_model=ConflictCheckResponse,
    responses={400: {"model": ErrorResponse}},
)
def check_conflicts(
    services: ServicesDep,
    actor: CurrentActor,
    payload: ConflictCheckRequest,
) -> ConflictCheckResponse:
    """Check whether a proposed shift overlaps the employee's existing shifts."""
    if not can_act_for(actor, payload.employee_id):
        raise forbid("Cannot inspect another employee's schedule")
    excluded = [payload.exclude_schedule_id] if payload.exclude_schedule_id else []
    conflicts = services.conflicts.find_conflicts(
        payload.employee_id,
        payload.shift_date,
        payload.start_time,
        payload.end_time,
        excluded,
    )
    return ConflictCheckResponse(
        has_conflict=bool(conflicts),
        conflicts=[ShiftResponse.model_validate(s) for s in conflicts],
    )


@shift_swaps_router.post(
    "",
    response_model=SwapResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def request_swap(
    services: ServicesDep,
    actor: Annotated[Actor, Depends(require(Permission.REQUEST_SWAP))],
    payload: SwapCreate,
) -> SwapResponse:
    """Propose exchanging one of the caller's shifts for a colleague's."""
    swap = services.swaps.request_swap(
        actor.employee_id,
        payload.requester_schedule_id,
        payload.target_schedule_id,
        payload.reason,
    )
    return SwapResponse.model_validate(swap)


@shift_swaps_router.get("", response_model=list[SwapResponse])
def list_swaps(
    services: ServicesDep,
    actor: CurrentActor,
    status_filter: Annotated[SwapStatus | None, Query(alias="status")] = None,
) -> list[SwapResponse]:
    """List swaps the caller takes part in; approvers see every swap."""
    employee_id = None if actor.has(Permission.APPROVE_SWAP) else actor.employee_id
    swaps = services.swap_store.list_swaps(employee_id, status_filter)
    return [SwapResponse.model_validate(s) for s in swaps]


@shift_swaps_router.post(
    "/{swap_id}/resolve",
    response_model=SwapResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def resolve_swap(
    services: ServicesDep,
    actor: Annotated[Actor, Depends(require(Permission.APPROVE_SWAP))],
    swap_id: Annotated[UUID, Path()],
    payload: SwapResolve,
) -> SwapResponse:
    """Approve or reject a pending swap."""
    swap = services.swaps.resolve_swap(
        swap_id, payload.approve, actor.employee_id, notes=payload.notes
    )
    return SwapResponse.model_validate(swap)
