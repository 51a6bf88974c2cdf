"""In-process publication of domain events to notification handlers.

Chat, webhook and email adapters subscribe here by event class or by
category. A failing adapter is logged and skipped; publishing never
raises into the clock-in or payroll operation that emitted the event.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from timeclock_payroll.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


@dataclass
class HandlerRegistration:
    handler: EventHandler
    event_types: set[str] | None  # None matches every event type
    categories: set[EventCategory] | None  # None matches every category

    def matches(self, event: DomainEvent) -> bool:
        if self.event_types and event.event_type not in self.event_types:
            return False
        if self.categories and event.category not in self.categories:
            return False
        return True


class EventEmitter:
    """Delivers events to subscribed handlers on the calling thread.

    Handlers are isolated: if one fails, the failure is logged and the
    others still receive the event. ``emit`` never raises.

    Usage:
        emitter = EventEmitter()
        emitter.on(ClockInRejected, notify_manager)
        emitter.on_category(EventCategory.PAYROLL, audit_log)

        with emitter.batch():
            emitter.emit(event1)
            emitter.emit(event2)
        # Both delivered when the block exits without error
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []
        self._lock = threading.Lock()
        self._local = threading.local()

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Subscribe to one event class or a list of them."""
        types = event_type if isinstance(event_type, list) else [event_type]
        self._register(HandlerRegistration(handler, {t.__name__ for t in types}, None))

    def on_category(
        self, category: EventCategory | list[EventCategory], handler: EventHandler
    ) -> None:
        """Subscribe to everything in one or more categories."""
        cats = category if isinstance(category, list) else [category]
        self._register(HandlerRegistration(handler, None, set(cats)))

    def on_all(self, handler: EventHandler) -> None:
        self._register(HandlerRegistration(handler, None, None))

    def off(self, handler: EventHandler) -> None:
        """Remove every subscription of ``handler``."""
        with self._lock:
            self._handlers = [r for r in self._handlers if r.handler != handler]

    def _register(self, registration: HandlerRegistration) -> None:
        with self._lock:
            self._handlers.append(registration)

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver ``event``, or hold it if a batch is open on this thread.

        Returns the exceptions raised by handlers; delivery is never aborted.
        """
        pending = getattr(self._local, "batch", None)
        if pending is not None:
            pending.append(event)
            return []
        return self._dispatch(event)

    def _dispatch(self, event: DomainEvent) -> list[Exception]:
        with self._lock:
            registrations = list(self._handlers)

        errors: list[Exception] = []
        for reg in registrations:
            if not reg.matches(event):
                continue
            try:
                reg.handler(event)
            except Exception as e:
                logger.exception(
                    "Handler %s failed for event %s", reg.handler, event.event_type
                )
                errors.append(e)
        return errors

    def batch(self) -> EventBatch:
        """Hold events emitted on this thread until the context exits."""
        return EventBatch(self)


class EventBatch:
    """Context manager for batching events.

    If the block raises, the collected events are discarded.
    """

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self._errors: list[Exception] = []

    def __enter__(self) -> EventBatch:
        self._emitter._local.batch = []
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        events = self._emitter._local.batch
        self._emitter._local.batch = None
        if exc_type is None:
            for event in events:
                self._errors.extend(self._emitter._dispatch(event))

    def add(self, event: DomainEvent) -> None:
        self._emitter.emit(event)

    @property
    def errors(self) -> list[Exception]:
        """Handler failures collected when the batch was delivered."""
        return self._errors
