"""Payroll endpoints: dry-run calculation, periods, runs, payslips and advances."""

from typing import Annotated, Any
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, Path, status

from timeclock_payroll.api.dependencies import CurrentActor, ServicesDep, forbid, require
from timeclock_payroll.api.schemas import (
    AdvanceCreate,
    AdvanceResponse,
    CalculateRequest,
    CalculationResultResponse,
    EmployeeFailureResponse,
    EmployeePayrollRequest,
    ErrorResponse,
    PayrollCalculationResponse,
    PeriodCreate,
    PeriodDetailResponse,
    PeriodResponse,
    RunRequest,
    RunResponse,
    SummaryResponse,
)
from timeclock_payroll.errors import ValidationError
from timeclock_payroll.payroll.payslip import EmployeeInfo, summarize
from timeclock_payroll.payroll.periods import generate_period
from timeclock_payroll.payroll.run import EmployeePayrollInput
from timeclock_payroll.payroll.types import PayrollPeriod
from timeclock_payroll.permissions import Actor, Permission

router = APIRouter(prefix="/payroll", tags=["payroll"])

PayrollViewer = Annotated[Actor, Depends(require(Permission.VIEW_PAYROLL))]
PayrollRunner = Annotated[Actor, Depends(require(Permission.RUN_PAYROLL))]


def _payroll_input(request: EmployeePayrollRequest) -> EmployeePayrollInput:
    return EmployeePayrollInput(
        employee_id=request.employee_id,
        rate_card=request.rate_card.to_rate_card(),
        deductions=request.deductions.to_inputs(),
    )


# ============================================================================
# Calculation
# ============================================================================


@router.post(
    "/calculate",
    response_model=CalculationResultResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def calculate(
    services: ServicesDep,
    actor: PayrollViewer,
    payload: CalculateRequest,
) -> CalculationResultResponse:
    """Calculate one employee's pay without persisting anything."""
    period = PayrollPeriod(
        id=uuid4(), start_date=payload.period_start, end_date=payload.period_end
    )
    result = services.payroll.preview(period, _payroll_input(payload))
    return CalculationResultResponse.model_validate(result)


# ============================================================================
# Periods
# ============================================================================


@router.post(
    "/periods",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
def create_period(
    services: ServicesDep,
    actor: Annotated[Actor, Depends(require(Permission.MANAGE_PERIODS))],
    payload: PeriodCreate,
) -> PeriodResponse:
    """Create a DRAFT period from explicit dates or from a frequency."""
    if payload.frequency is not None:
        period = services.payroll.create_period_from_window(
            generate_period(payload.frequency, payload.start_date)
        )
    elif payload.end_date is not None:
        period = services.payroll.create_period(
            payload.start_date,
            payload.end_date,
            name=payload.name,
            pay_date=payload.pay_date,
            cutoff_date=payload.cutoff_date,
        )
    else:
        raise ValidationError("Either end_date or frequency is required")
    return PeriodResponse.model_validate(period)


@router.get("/periods", response_model=list[PeriodResponse])
def list_periods(services: ServicesDep, actor: PayrollViewer) -> list[PeriodResponse]:
    """List periods, most recent first."""
    return [PeriodResponse.model_validate(p) for p in services.payroll_store.list_periods()]


@router.get(
    "/periods/{period_id}",
    response_model=PeriodDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_period(
    services: ServicesDep,
    actor: PayrollViewer,
    period_id: Annotated[UUID, Path()],
) -> PeriodDetailResponse:
    """Get a period with its stored calculations and totals."""
    period = services.payroll.get_period(period_id)
    calculations = services.payroll_store.list_calculations(period_id)
    return PeriodDetailResponse(
        period=PeriodResponse.model_validate(period),
        calculations=[PayrollCalculationResponse.model_validate(c) for c in calculations],
        summary=SummaryResponse.model_validate(summarize(calculations)),
    )


@router.post(
    "/periods/{period_id}/run",
    response_model=RunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def run_period(
    services: ServicesDep,
    actor: PayrollRunner,
    period_id: Annotated[UUID, Path()],
    payload: RunRequest,
) -> RunResponse:
    """Calculate and persist every listed employee's pay for the period."""
    run = services.payroll.run_period(
        period_id,
        [_payroll_input(e) for e in payload.employees],
        actor_id=actor.employee_id,
    )
    return RunResponse(
        period=PeriodResponse.model_validate(run.period),
        results=[CalculationResultResponse.model_validate(r) for r in run.results],
        failures=[EmployeeFailureResponse.model_validate(f) for f in run.failures],
        summary=SummaryResponse.model_validate(run.summary),
    )


@router.post(
    "/periods/{period_id}/reopen",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def reopen_period(
    services: ServicesDep,
    actor: PayrollRunner,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    """Return a period in ERROR to DRAFT so it can be run again."""
    return PeriodResponse.model_validate(services.payroll.reopen_period(period_id))


@router.get(
    "/periods/{period_id}/payslips/{employee_id}",
    responses={404: {"model": ErrorResponse}},
)
def get_payslip(
    services: ServicesDep,
    actor: CurrentActor,
    period_id: Annotated[UUID, Path()],
    employee_id: Annotated[UUID, Path()],
    name: str = "",
    employee_code: str = "",
    position: str = "",
    branch: str = "",
) -> dict[str, Any]:
    """Render a stored calculation as a payslip."""
    if actor.employee_id != employee_id and not actor.has(Permission.VIEW_PAYROLL):
        raise forbid("Cannot view another employee's payslip")
    payslip = services.payroll.payslip(
        period_id,
        EmployeeInfo(
            employee_id=employee_id,
            name=name,
            employee_code=employee_code,
            position=position,
            branch=branch,
        ),
    )
    if payslip is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No calculation for this employee in this period",
        )
    return payslip.to_dict()


# ============================================================================
# Salary advances
# ============================================================================


@router.post(
    "/advances",
    response_model=AdvanceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
def request_advance(
    services: ServicesDep,
    actor: CurrentActor,
    payload: AdvanceCreate,
) -> AdvanceResponse:
    """Request an advance against the caller's verified earnings."""
    entries = services.entry_store.list_entries(
        actor.employee_id, payload.start_date, payload.end_date
    )
    eligibility = services.advances.eligibility(
        actor.employee_id,
        entries,
        payload.hourly_rate,
        payload.start_date,
        payload.end_date,
    )
    advance = services.advances.request_advance(
        actor.employee_id, payload.amount, eligibility, reason=payload.reason
    )
    return AdvanceResponse.model_validate(advance)


@router.post(
    "/advances/{advance_id}/approve",
    response_model=AdvanceResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def approve_advance(
    services: ServicesDep,
    actor: PayrollRunner,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceResponse:
    return AdvanceResponse.model_validate(
        services.advances.approve(advance_id, actor.employee_id)
    )


@router.post(
    "/advances/{advance_id}/reject",
    response_model=AdvanceResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def reject_advance(
    services: ServicesDep,
    actor: PayrollRunner,
    advance_id: Annotated[UUID, Path()],
) -> AdvanceResponse:
    return AdvanceResponse.model_validate(
        services.advances.reject(advance_id, actor.employee_id)
    )
