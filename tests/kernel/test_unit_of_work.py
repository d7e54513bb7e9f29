"""
Tests for the unit of work, the service boundary and event dispatch.

Validates:
- Domain events reach handlers only after a successful commit
- Rollback discards pending events and cached aggregates
- checkpoint()/restore() drop events raised after the checkpoint
- A failing handler is logged and does not stop the others
- run_operation maps FopError to Result.failure and re-raises anything else
- A stale versioned write surfaces as Error.Concurrency
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from pydantic import BaseModel, Field
from sqlalchemy import text

from fop_kernel.domain.result import Error, Result
from fop_kernel.domain.values import Money
from fop_kernel.exceptions import (
    InvalidPermitStateError,
    NotFoundError,
    PermitBlockedDueToDebtError,
    PermitError,
    ValidationFailedError,
)
from fop_kernel.services.boundary import parse_command, run_operation
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork
from fop_modules.permits.events import PermitEvent, PermitIssued
from fop_modules.permits.models import Permit
from fop_modules.permits.repository import PermitRepository


def _issue(now, **overrides) -> Permit:
    data = dict(
        tenant_id="bvi",
        application_id=uuid4(),
        application_number="FOP-OT-20260115-0000ABCD",
        permit_type="ONE_TIME",
        operator_id=uuid4(),
        aircraft_id=uuid4(),
        valid_from=date(2026, 2, 1),
        valid_until=date(2026, 2, 28),
        fees_paid=Money.of("350"),
        issued_by="officer.penn",
        now=now,
    )
    data.update(overrides)
    return Permit.issue(**data)


class _Shape(BaseModel):
    name: str = Field(min_length=3)


# =============================================================================
# Result
# =============================================================================


class TestResult:
    def test_success(self):
        result = Result.success(42)
        assert result.is_success and not result.is_failure
        assert result.unwrap() == 42

    def test_failure_unwrap_raises(self):
        result = Result.failure(Error("Permit.InvalidOperation", "nope"))
        assert result.is_failure
        with pytest.raises(RuntimeError, match="Permit.InvalidOperation"):
            result.unwrap()


# =============================================================================
# Event dispatch after commit
# =============================================================================


class TestUnitOfWorkEvents:
    def test_events_dispatched_only_after_commit(self, session, deterministic_clock):
        received = []
        dispatcher = EventDispatcher()
        dispatcher.subscribe(PermitIssued, received.append)
        uow = UnitOfWork(session, dispatcher)
        permits = PermitRepository(session, "bvi", uow)

        permit = permits.add(_issue(deterministic_clock.now_utc()))
        uow.flush()
        assert received == []
        assert len(uow.pending_events) == 1

        uow.save_changes()
        assert [e.permit_id for e in received] == [permit.id]
        assert uow.pending_events == ()

    def test_handlers_match_base_event_types(self, session, deterministic_clock):
        received = []
        dispatcher = EventDispatcher()
        dispatcher.subscribe(PermitEvent, received.append)
        uow = UnitOfWork(session, dispatcher)
        PermitRepository(session, "bvi", uow).add(_issue(deterministic_clock.now_utc()))

        uow.save_changes()

        assert len(received) == 1
        assert isinstance(received[0], PermitIssued)

    def test_rollback_discards_events(self, session, deterministic_clock):
        received = []
        dispatcher = EventDispatcher()
        dispatcher.subscribe(PermitIssued, received.append)
        uow = UnitOfWork(session, dispatcher)
        permits = PermitRepository(session, "bvi", uow)
        permit = permits.add(_issue(deterministic_clock.now_utc()))
        uow.flush()

        uow.rollback()

        assert uow.pending_events == ()
        assert received == []
        assert PermitRepository(session, "bvi").find(permit.id) is None

    def test_restore_truncates_events_to_checkpoint(self, session, deterministic_clock):
        uow = UnitOfWork(session)
        permits = PermitRepository(session, "bvi", uow)
        permits.add(_issue(deterministic_clock.now_utc()))
        uow.flush()
        checkpoint = uow.checkpoint()

        permits.add(_issue(deterministic_clock.now_utc()))
        uow.flush()
        assert len(uow.pending_events) == 2

        uow.restore(checkpoint)
        assert len(uow.pending_events) == 1
        assert permits.cached() == ()


class TestEventDispatcher:
    def test_failing_handler_does_not_stop_others(self, deterministic_clock, captured_logs):
        received = []

        def broken(event):
            raise RuntimeError("smtp down")

        dispatcher = EventDispatcher()
        dispatcher.subscribe(PermitIssued, broken)
        dispatcher.subscribe(PermitIssued, received.append)
        event = _issue(deterministic_clock.now_utc()).pull_domain_events()[0]

        failures = dispatcher.dispatch([event])

        assert failures == 1
        assert received == [event]
        logs = captured_logs()
        failed = [r for r in logs if r["message"] == "event_handler_failed"]
        assert failed and failed[0]["event_type"] == "PermitIssued"

    def test_unsubscribed_event_is_ignored(self, deterministic_clock):
        event = _issue(deterministic_clock.now_utc()).pull_domain_events()[0]
        assert EventDispatcher().dispatch([event]) == 0


# =============================================================================
# Service boundary
# =============================================================================


class TestParseCommand:
    def test_valid(self):
        assert parse_command(_Shape, name="abcd").name == "abcd"

    def test_invalid_raises_validation_failed(self):
        with pytest.raises(ValidationFailedError):
            parse_command(_Shape, name="ab")


class TestRunOperation:
    def test_success_commits(self, session, deterministic_clock):
        uow = UnitOfWork(session)
        permits = PermitRepository(session, "bvi", uow)

        result = run_operation(
            uow, "Permit.InvalidOperation",
            lambda: permits.add(_issue(deterministic_clock.now_utc())),
            log_event="test_issue",
        )

        assert result.is_success
        assert PermitRepository(session, "bvi").find(result.value.id) is not None

    def test_domain_error_uses_operation_code(self, session, deterministic_clock):
        uow = UnitOfWork(session)

        def operation():
            raise InvalidPermitStateError("BVI-FOP-OT-2026-ABCDEF", "REVOKED", "suspend")

        result = run_operation(uow, "Permit.InvalidOperation", operation, log_event="test_suspend")

        assert result.error.code == "Permit.InvalidOperation"
        assert result.error.cause_code == "Permit.InvalidState"

    @pytest.mark.parametrize(
        "exc, code",
        [
            (NotFoundError("Permit", uuid4()), "Error.NotFound"),
            (PermitBlockedDueToDebtError(uuid4(), Money.of("10"), ["debt"]), "Permit.BlockedDueToDebt"),
        ],
    )
    def test_passthrough_errors_keep_their_code(self, session, exc, code):
        uow = UnitOfWork(session)

        def operation():
            raise exc

        result = run_operation(uow, "Application.InvalidOperation", operation, log_event="test_op")

        assert result.error.code == code

    def test_failure_rolls_back(self, session, deterministic_clock, captured_logs):
        uow = UnitOfWork(session)
        permits = PermitRepository(session, "bvi", uow)
        permit = _issue(deterministic_clock.now_utc())

        def operation():
            permits.add(permit)
            uow.flush()
            raise InvalidPermitStateError(permit.permit_number, "ACTIVE", "reinstate")

        result = run_operation(uow, "Permit.InvalidOperation", operation, log_event="test_reinstate")

        assert result.is_failure
        assert PermitRepository(session, "bvi").find(permit.id) is None
        assert any(r["message"] == "test_reinstate_failed" for r in captured_logs())

    def test_unexpected_exception_propagates(self, session):
        uow = UnitOfWork(session)

        def operation():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            run_operation(uow, "Permit.InvalidOperation", operation, log_event="test_boom")


class TestOptimisticLocking:
    def test_stale_write_is_a_concurrency_failure(self, session, deterministic_clock):
        now = deterministic_clock.now_utc()
        setup = UnitOfWork(session)
        permit_id = PermitRepository(session, "bvi", setup).add(_issue(now)).id
        setup.save_changes()

        uow = UnitOfWork(session)
        permits = PermitRepository(session, "bvi", uow)
        permit = permits.get(permit_id)
        # Another writer bumps the row after we loaded it
        session.execute(
            text("UPDATE fop_permits SET version = version + 1 WHERE id = :id"),
            {"id": str(permit_id)},
        )

        result = run_operation(
            uow, "Permit.InvalidOperation",
            lambda: permit.suspend("Insurance lapsed", now),
            log_event="test_suspend",
        )

        assert result.error.code == "Error.Concurrency"


class TestPermitFactory:
    def test_validity_window_must_be_ordered(self, deterministic_clock):
        with pytest.raises(PermitError):
            _issue(
                deterministic_clock.now_utc(),
                valid_from=date(2026, 3, 1),
                valid_until=date(2026, 3, 1) - timedelta(days=1),
            )
