"""Salary advances: eligibility, requests and their lifecycle.

PENDING -> APPROVED -> PROCESSED (deducted by a completed payroll run)
PROCESSED -> APPROVED (the run that consumed it ended in error)
PENDING -> REJECTED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Iterable
from uuid import UUID, uuid4

from timeclock_payroll.config import get_settings
from timeclock_payroll.errors import NotFoundError, ValidationError
from timeclock_payroll.payroll.types import ZERO, AdvanceStatus, SalaryAdvance, money
from timeclock_payroll.timekeeping.types import TimeEntry

if TYPE_CHECKING:
    from timeclock_payroll.storage.protocols import PayrollStore

logger = logging.getLogger(__name__)


def verified_hours(
    entries: Iterable[TimeEntry], employee_id: UUID, start: date, end: date
) -> Decimal:
    return sum(
        (
            e.total_hours
            for e in entries
            if e.employee_id == employee_id
            and e.verified
            and e.total_hours is not None
            and start <= e.work_date <= end
        ),
        ZERO,
    )


def max_advance_amount(
    entries: Iterable[TimeEntry],
    employee_id: UUID,
    hourly_rate: Decimal,
    start: date,
    end: date,
    ratio: Decimal = Decimal("0.5"),
) -> Decimal:
    """Share of verified earnings in ``[start, end]`` that may be advanced."""
    return money(verified_hours(entries, employee_id, start, end) * hourly_rate * ratio)


@dataclass(frozen=True)
class AdvanceEligibility:
    hours_worked: Decimal
    gross_earnings: Decimal
    max_amount: Decimal
    current_advances: Decimal
    available_amount: Decimal

    @property
    def eligible(self) -> bool:
        return self.available_amount > 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SalaryAdvanceService:
    def __init__(
        self,
        store: PayrollStore,
        max_ratio: Decimal | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.max_ratio = max_ratio if max_ratio is not None else get_settings().max_advance_ratio
        self.clock = clock

    def eligibility(
        self,
        employee_id: UUID,
        entries: Iterable[TimeEntry],
        hourly_rate: Decimal,
        start: date,
        end: date,
    ) -> AdvanceEligibility:
        """How much the employee may still request for the window.

        Pending and approved advances count against the limit.
        """
        entries = list(entries)
        worked = verified_hours(entries, employee_id, start, end)
        maximum = max_advance_amount(
            entries, employee_id, hourly_rate, start, end, self.max_ratio
        )
        current = sum(
            (
                a.amount
                for a in self.store.list_advances(employee_id)
                if a.status in (AdvanceStatus.PENDING, AdvanceStatus.APPROVED)
            ),
            ZERO,
        )
        return AdvanceEligibility(
            hours_worked=worked,
            gross_earnings=money(worked * hourly_rate),
            max_amount=maximum,
            current_advances=money(current),
            available_amount=max(ZERO, money(maximum - current)),
        )

    def request_advance(
        self,
        employee_id: UUID,
        amount: Decimal,
        eligibility: AdvanceEligibility,
        reason: str = "",
    ) -> SalaryAdvance:
        if amount <= 0:
            raise ValidationError("Advance amount must be greater than 0", amount=amount)
        if amount > eligibility.available_amount:
            raise ValidationError(
                f"Requested {amount} exceeds available amount "
                f"{eligibility.available_amount}",
                amount=amount,
                available_amount=eligibility.available_amount,
            )
        advance = self.store.add_advance(
            SalaryAdvance(
                id=uuid4(),
                employee_id=employee_id,
                amount=money(amount),
                reason=reason,
                requested_at=self.clock(),
            )
        )
        logger.info("Salary advance %s requested by %s: %s", advance.id, employee_id, amount)
        return advance

    def _get(self, advance_id: UUID) -> SalaryAdvance:
        advance = self.store.get_advance(advance_id)
        if advance is None:
            raise NotFoundError(
                f"Salary advance {advance_id} not found", advance_id=advance_id
            )
        return advance

    def approve(self, advance_id: UUID, actor_id: UUID) -> SalaryAdvance:
        advance = self._get(advance_id)
        return self.store.update_advance_if_status(
            replace(
                advance,
                status=AdvanceStatus.APPROVED,
                approved_at=self.clock(),
                approved_by=actor_id,
            ),
            AdvanceStatus.PENDING,
        )

    def reject(self, advance_id: UUID, actor_id: UUID) -> SalaryAdvance:
        advance = self._get(advance_id)
        logger.info("Salary advance %s rejected by %s", advance_id, actor_id)
        return self.store.update_advance_if_status(
            replace(advance, status=AdvanceStatus.REJECTED), AdvanceStatus.PENDING
        )

    def mark_processed(self, advance_ids: Iterable[UUID]) -> list[SalaryAdvance]:
        """Mark advances deducted by a completed run so they are not deducted again."""
        return [
            self.store.update_advance_if_status(
                replace(self._get(advance_id), status=AdvanceStatus.PROCESSED),
                AdvanceStatus.APPROVED,
            )
            for advance_id in advance_ids
        ]

    def release(self, advance_ids: Iterable[UUID]) -> list[SalaryAdvance]:
        """Return advances consumed by a run that did not complete to APPROVED."""
        released = []
        for advance_id in advance_ids:
            released.append(
                self.store.update_advance_if_status(
                    replace(self._get(advance_id), status=AdvanceStatus.APPROVED),
                    AdvanceStatus.PROCESSED,
                )
            )
            logger.info("Salary advance %s released back to approved", advance_id)
        return released
