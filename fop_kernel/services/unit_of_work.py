"""
UnitOfWork -- single commit point for aggregate mutations.

Responsibility:
    Collects every aggregate loaded or added during an operation, writes
    their state back to the session, commits once and only then drains and
    dispatches the domain events they raised.

Architecture position:
    Kernel > Services.  Works with any repository exposing ``persist`` and
    ``reset``; modules build their repositories on top of it.

Invariants enforced:
    - Events are published strictly after a successful commit.
    - A rollback discards pending events and cached aggregates.
    - checkpoint()/restore() let the batch executor undo one item without
      losing the work of earlier items in the same run.

Failure modes:
    - ConcurrencyConflictError when a versioned row was changed by another
      transaction (SQLAlchemy StaleDataError at flush).
"""

from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fop_kernel.domain.events import DomainEvent
from fop_kernel.exceptions import ConcurrencyConflictError
from fop_kernel.logging_config import get_logger
from fop_kernel.services.event_dispatcher import EventDispatcher

logger = get_logger("services.unit_of_work")


class TrackingRepository(Protocol):
    def persist(self, aggregate: Any) -> None: ...

    def reset(self) -> None: ...


class UnitOfWork:
    """Request- or job-scoped transaction with deferred event dispatch."""

    def __init__(self, session: Session, dispatcher: EventDispatcher | None = None):
        self._session = session
        self._dispatcher = dispatcher
        self._repositories: list[TrackingRepository] = []
        self._tracked: dict[int, tuple[Any, TrackingRepository]] = {}
        self._events: list[DomainEvent] = []

    @property
    def session(self) -> Session:
        return self._session

    def register_repository(self, repository: TrackingRepository) -> None:
        self._repositories.append(repository)

    def track(self, aggregate: Any, repository: TrackingRepository) -> None:
        self._tracked[id(aggregate)] = (aggregate, repository)

    def collect(self, event: DomainEvent) -> None:
        """Queue an event that no aggregate owns (e.g. an expiry warning)."""
        self._events.append(event)

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    # -- flushing ------------------------------------------------------------

    def flush(self) -> None:
        """Write tracked aggregates to the session and drain their events."""
        for aggregate, repository in list(self._tracked.values()):
            repository.persist(aggregate)
        try:
            self._session.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflictError(str(exc)) from exc
        for aggregate, _ in self._tracked.values():
            pull = getattr(aggregate, "pull_domain_events", None)
            if pull is not None:
                self._events.extend(pull())

    def checkpoint(self) -> int:
        return len(self._events)

    def restore(self, checkpoint: int) -> None:
        """Drop events and aggregate caches after a SAVEPOINT rollback."""
        del self._events[checkpoint:]
        self._forget_aggregates()

    # -- commit / rollback ---------------------------------------------------

    def save_changes(self) -> list[DomainEvent]:
        """Commit all pending mutations atomically, then dispatch events."""
        try:
            self.flush()
            self._session.commit()
        except StaleDataError as exc:
            self.rollback()
            raise ConcurrencyConflictError(str(exc)) from exc
        except Exception:
            self.rollback()
            raise

        events, self._events = self._events, []
        logger.debug("unit_of_work_committed", extra={"event_count": len(events)})
        if self._dispatcher is not None and events:
            self._dispatcher.dispatch(events)
        return events

    def rollback(self) -> None:
        self._session.rollback()
        self._events.clear()
        self._forget_aggregates()
        logger.debug("unit_of_work_rolled_back")

    def _forget_aggregates(self) -> None:
        self._tracked.clear()
        for repository in self._repositories:
            repository.reset()
