"""Shift swap requests between employees."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Callable
from uuid import UUID, uuid4

from timeclock_payroll.errors import (
    ScheduleNotAssigned,
    ScheduleNotFound,
    SwapNotEligible,
    SwapRequestNotFound,
    ValidationError,
)
from timeclock_payroll.events import EventEmitter, EventMetadata, SwapRequested, SwapResolved
from timeclock_payroll.scheduling.conflicts import ScheduleConflictChecker, ShiftInterval

if TYPE_CHECKING:
    from timeclock_payroll.scheduling.directory import ScheduleDirectory
    from timeclock_payroll.storage.protocols import SwapRequestStore

logger = logging.getLogger(__name__)


class SwapStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SwapRequest:
    id: UUID
    requester_id: UUID
    requester_schedule_id: UUID
    target_employee_id: UUID
    target_schedule_id: UUID
    reason: str
    created_at: datetime
    status: SwapStatus = SwapStatus.PENDING
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    notes: str | None = None

    @property
    def schedule_ids(self) -> tuple[UUID, UUID]:
        return (self.requester_schedule_id, self.target_schedule_id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShiftSwapService:
    """Proposes and resolves shift swaps.

    Eligibility is checked when the swap is proposed and again when it is
    approved, since either schedule may have changed in between. Approving
    only records the decision; exchanging the schedules belongs to the
    schedule store.
    """

    def __init__(
        self,
        directory: ScheduleDirectory,
        store: SwapRequestStore,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = _utcnow,
        tz: tzinfo = timezone.utc,
    ):
        self.directory = directory
        self.store = store
        self.checker = ScheduleConflictChecker(directory, tz)
        self.emitter = emitter or EventEmitter()
        self.clock = clock

    def _shift(self, schedule_id: UUID) -> ShiftInterval:
        shift = self.directory.get_shift(schedule_id)
        if shift is None:
            raise ScheduleNotFound(schedule_id)
        return shift

    def _ensure_eligible(
        self, requester_shift: ShiftInterval, target_shift: ShiftInterval, now: datetime
    ) -> None:
        eligibility = self.checker.check_swap(requester_shift, target_shift, now)
        if not eligibility.eligible:
            raise SwapNotEligible(list(eligibility.reasons))

    def request_swap(
        self,
        requester_id: UUID,
        requester_schedule_id: UUID,
        target_schedule_id: UUID,
        reason: str,
    ) -> SwapRequest:
        """Propose exchanging the requester's shift for another employee's.

        Raises:
            ScheduleNotFound: Either schedule is unknown
            ScheduleNotAssigned: The requester does not own their schedule
            SwapNotEligible: Date, ownership or conflict rules fail
            SwapAlreadyPending: Either schedule is already in a pending swap
        """
        if not reason or not reason.strip():
            raise ValidationError("A reason is required for a shift swap")

        now = self.clock()
        requester_shift = self._shift(requester_schedule_id)
        target_shift = self._shift(target_schedule_id)

        if requester_shift.employee_id != requester_id:
            raise ScheduleNotAssigned(requester_schedule_id, requester_id)

        self._ensure_eligible(requester_shift, target_shift, now)

        swap = self.store.insert_if_no_pending_swap(
            SwapRequest(
                id=uuid4(),
                requester_id=requester_id,
                requester_schedule_id=requester_schedule_id,
                target_employee_id=target_shift.employee_id,
                target_schedule_id=target_schedule_id,
                reason=reason.strip(),
                created_at=now,
            )
        )
        logger.info(
            "Shift swap %s requested by %s (%s <-> %s)",
            swap.id,
            requester_id,
            requester_schedule_id,
            target_schedule_id,
        )
        self.emitter.emit(
            SwapRequested(
                metadata=EventMetadata.create(
                    actor_id=requester_id, actor_type="employee", source_service="scheduling"
                ),
                swap_id=swap.id,
                requester_id=swap.requester_id,
                requester_schedule_id=swap.requester_schedule_id,
                target_employee_id=swap.target_employee_id,
                target_schedule_id=swap.target_schedule_id,
            )
        )
        return swap

    def resolve_swap(
        self,
        swap_id: UUID,
        approve: bool,
        actor_id: UUID,
        notes: str | None = None,
    ) -> SwapRequest:
        """Approve or reject a pending swap.

        Raises:
            SwapRequestNotFound: Unknown swap
            SwapNotEligible: Approval would now break a swap rule
            InvalidTransitionError: The swap is no longer pending
        """
        swap = self.store.get_swap(swap_id)
        if swap is None:
            raise SwapRequestNotFound(swap_id)

        now = self.clock()
        if approve:
            self._ensure_eligible(
                self._shift(swap.requester_schedule_id),
                self._shift(swap.target_schedule_id),
                now,
            )

        resolved = self.store.resolve_swap_if_pending(
            replace(
                swap,
                status=SwapStatus.APPROVED if approve else SwapStatus.REJECTED,
                resolved_by=actor_id,
                resolved_at=now,
                notes=notes,
            )
        )
        logger.info("Shift swap %s %s by %s", swap_id, resolved.status.value, actor_id)
        self.emitter.emit(
            SwapResolved(
                metadata=EventMetadata.create(
                    actor_id=actor_id, actor_type="manager", source_service="scheduling"
                ),
                swap_id=resolved.id,
                status=resolved.status.value,
                resolved_by=actor_id,
            )
        )
        return resolved
