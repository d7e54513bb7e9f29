"""
EventDispatcher -- post-commit publication of domain events.

Responsibility:
    Routes each committed domain event to the handlers subscribed to its
    type.  Handlers carry the side effects (notifications, automatic
    pre-arrival invoices) that must never roll back core state.

Architecture position:
    Kernel > Services.  Knows nothing about concrete events or modules;
    modules subscribe their handlers at wiring time.

Invariants enforced:
    - dispatch() is only called by UnitOfWork after a successful commit.
    - A failing handler is logged and skipped; remaining handlers still run.
    - No handler is retried.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Iterable

from fop_kernel.domain.events import DomainEvent
from fop_kernel.logging_config import get_logger

logger = get_logger("services.event_dispatcher")

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Best-effort, at-most-once fan-out of domain events."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event: DomainEvent) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for event_type in type(event).__mro__:
            matched.extend(self._handlers.get(event_type, ()))
        return matched

    def dispatch(self, events: Iterable[DomainEvent]) -> int:
        """Publish events; returns the number of handler failures."""
        failures = 0
        for event in events:
            for handler in self.handlers_for(event):
                try:
                    handler(event)
                except Exception:
                    failures += 1
                    logger.exception(
                        "event_handler_failed",
                        extra={
                            "event_type": event.event_type,
                            "event_id": str(event.event_id),
                            "handler": getattr(handler, "__qualname__", repr(handler)),
                        },
                    )
        return failures
