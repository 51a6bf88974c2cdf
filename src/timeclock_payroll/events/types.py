"""Domain events for time tracking, scheduling and payroll.

Notification dispatch (chat, webhooks, email) subscribes to these. Each
event is a frozen dataclass whose payload fields are typed, and carries an
EventMetadata block linking it to the request that produced it.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    TIMEKEEPING = "timekeeping"
    SCHEDULING = "scheduling"
    PAYROLL = "payroll"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID  # Links related events
    causation_id: UUID | None  # Event that caused this one
    actor_id: UUID | None  # Employee or system that triggered
    actor_type: str  # 'employee', 'manager', 'system'
    source_service: str  # Service that emitted
    version: int = 1

    @classmethod
    def create(
        cls,
        actor_id: UUID | None = None,
        actor_type: str = "system",
        source_service: str = "timeclock",
        correlation_id: UUID | None = None,
        causation_id: UUID | None = None,
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            correlation_id=correlation_id or uuid4(),
            causation_id=causation_id,
            actor_id=actor_id,
            actor_type=actor_type,
            source_service=source_service,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        """Event type name for routing."""
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(asdict(self))
        data["event_type"] = self.event_type
        data["category"] = self.category.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    """Recursively convert to JSON-compatible values."""
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Timekeeping Events
# =============================================================================


@dataclass(frozen=True)
class ClockedIn(DomainEvent):
    """An employee started a time entry."""

    entry_id: UUID
    employee_id: UUID
    schedule_id: UUID
    clock_in: datetime
    verified: bool
    manual_entry: bool

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMEKEEPING


@dataclass(frozen=True)
class ClockedOut(DomainEvent):
    """An employee completed a time entry."""

    entry_id: UUID
    employee_id: UUID
    clock_out: datetime
    total_hours: Decimal
    verified: bool

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMEKEEPING


@dataclass(frozen=True)
class ClockInRejected(DomainEvent):
    """A clock event failed location verification.

    Managers are typically notified of these.
    """

    employee_id: UUID
    schedule_id: UUID
    action: str  # 'clock_in' or 'clock_out'
    reason: str
    distance_meters: float | None
    accuracy_meters: float

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMEKEEPING


@dataclass(frozen=True)
class CorrectionRequested(DomainEvent):
    correction_id: UUID
    entry_id: UUID
    employee_id: UUID
    correction_type: str
    reason: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMEKEEPING


@dataclass(frozen=True)
class CorrectionResolved(DomainEvent):
    correction_id: UUID
    entry_id: UUID
    employee_id: UUID
    status: str
    resolved_by: UUID
    notes: str | None

    @property
    def category(self) -> EventCategory:
        return EventCategory.TIMEKEEPING


# =============================================================================
# Scheduling Events
# =============================================================================


@dataclass(frozen=True)
class SwapRequested(DomainEvent):
    swap_id: UUID
    requester_id: UUID
    requester_schedule_id: UUID
    target_employee_id: UUID
    target_schedule_id: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.SCHEDULING


@dataclass(frozen=True)
class SwapResolved(DomainEvent):
    swap_id: UUID
    status: str
    resolved_by: UUID

    @property
    def category(self) -> EventCategory:
        return EventCategory.SCHEDULING


# =============================================================================
# Payroll Events
# =============================================================================


@dataclass(frozen=True)
class PayrollPeriodCompleted(DomainEvent):
    """A payroll period run finished; some employees may have failed."""

    period_id: UUID
    employee_count: int
    failed_count: int
    total_gross: Decimal
    total_net: Decimal

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL


@dataclass(frozen=True)
class PayrollPeriodFailed(DomainEvent):
    period_id: UUID
    error: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYROLL
