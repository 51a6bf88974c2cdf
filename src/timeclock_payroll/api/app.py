"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timeclock_payroll.api.dependencies import Services, build_services
from timeclock_payroll.api.routes import (
    health_router,
    payroll_router,
    schedules_router,
    shift_swaps_router,
    timesheet_router,
)
from timeclock_payroll.errors import (
    ConflictError,
    LocationRejected,
    NotFoundError,
    PayrollCalculationError,
    TimeclockError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def status_for(exc: TimeclockError) -> int:
    """HTTP status for a domain error."""
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (LocationRejected, PayrollCalculationError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_400_BAD_REQUEST


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Timeclock Payroll API",
        description="Location-verified time tracking and payroll",
        version="0.1.0",
    )
    app.state.services = services or build_services()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(TimeclockError)
    async def timeclock_exception_handler(
        request: Request, exc: TimeclockError
    ) -> JSONResponse:
        """Map domain errors to their HTTP status with a stable code."""
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(timesheet_router, prefix="/api/v1")
    app.include_router(schedules_router, prefix="/api/v1")
    app.include_router(shift_swaps_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app
