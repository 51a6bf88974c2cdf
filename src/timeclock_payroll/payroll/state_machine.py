"""Payroll period state machine with transition validation."""

from __future__ import annotations

from timeclock_payroll.errors import InvalidTransitionError
from timeclock_payroll.payroll.types import PeriodStatus


class PayrollPeriodStateMachine:
    """State machine for payroll period status transitions.

    Allowed transitions:
    - draft → processing (single-writer claim)
    - processing → completed
    - processing → error
    - error → draft (reopen for a re-run)
    """

    VALID_TRANSITIONS: dict[PeriodStatus, list[PeriodStatus]] = {
        PeriodStatus.DRAFT: [PeriodStatus.PROCESSING],
        PeriodStatus.PROCESSING: [PeriodStatus.COMPLETED, PeriodStatus.ERROR],
        PeriodStatus.ERROR: [PeriodStatus.DRAFT],
        PeriodStatus.COMPLETED: [],  # Terminal state
    }

    # Statuses where calculations may be written
    RESULTS_WRITABLE = {PeriodStatus.PROCESSING}

    @classmethod
    def can_transition(cls, from_status: PeriodStatus, to_status: PeriodStatus) -> bool:
        return to_status in cls.VALID_TRANSITIONS.get(PeriodStatus(from_status), [])

    @classmethod
    def validate_transition(cls, from_status: PeriodStatus, to_status: PeriodStatus) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                PeriodStatus(from_status).value, PeriodStatus(to_status).value
            )

    @classmethod
    def can_write_results(cls, status: PeriodStatus) -> bool:
        return status in cls.RESULTS_WRITABLE

    @classmethod
    def is_reopen(cls, from_status: PeriodStatus, to_status: PeriodStatus) -> bool:
        return from_status == PeriodStatus.ERROR and to_status == PeriodStatus.DRAFT

    @classmethod
    def get_next_statuses(cls, current_status: PeriodStatus) -> list[PeriodStatus]:
        return cls.VALID_TRANSITIONS.get(PeriodStatus(current_status), [])
