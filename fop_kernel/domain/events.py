"""
Domain events, entities and the aggregate-root event queue.

Aggregates append events to a private queue while they mutate.  The unit of
work drains the queue only after a successful flush and dispatches the
events after commit, so side effects never observe uncommitted state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for everything an aggregate announces."""

    occurred_at: datetime
    event_id: UUID = field(default_factory=uuid4)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class Entity:
    """
    Base for domain objects with identity and private, method-guarded state.

    State lives in underscore attributes exposed through read-only
    properties.  ``restore`` rebuilds an instance from persisted state
    without running the validating factory.
    """

    _id: UUID

    @property
    def id(self) -> UUID:
        return self._id

    @classmethod
    def restore(cls, **state: object):
        obj = cls.__new__(cls)
        for name, value in state.items():
            setattr(obj, f"_{name}", value)
        obj._on_restore()
        return obj

    def _on_restore(self) -> None:
        pass

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.id == self.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))


class AggregateRoot(Entity):
    """Entity that owns a pending-event queue."""

    def _on_restore(self) -> None:
        self._init_events()

    def _init_events(self) -> None:
        self._pending_events: list[DomainEvent] = []

    def _raise_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_pending_events"):
            self._init_events()
        self._pending_events.append(event)

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(getattr(self, "_pending_events", ()))

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return and clear the queued events."""
        events = list(getattr(self, "_pending_events", ()))
        self._init_events()
        return events
