"""
Pytest fixtures for the FOP core test suite.

Provides:
- In-memory SQLite engine and session per test (all ORM tables created)
- Services wired to a DeterministicClock and a shared EventDispatcher
- Builders for applications at each step of the review workflow

Every test gets a fresh database; nothing is shared between tests.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from fop_config.schema import FopSettings
from fop_kernel.db.base import Base
from fop_kernel.db.engine import build_engine
from fop_kernel.domain.clock import DeterministicClock
from fop_kernel.domain.values import Money
from fop_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork
from fop_modules._orm_registry import import_all_orm_models
from fop_modules.applications.models import REQUIRED_DOCUMENT_TYPES
from fop_modules.applications.service import ApplicationService
from fop_modules.notifications import RecordingNotificationSender, register_default_handlers
from fop_modules.permits.service import PermitService
from fop_modules.revenue.models import OperatorAccountBalance
from fop_modules.revenue.repository import AccountBalanceRepository
from fop_modules.revenue.service import RevenueService

TEST_TENANT_ID = "bvi"
TEST_OPERATOR_ID = UUID("00000000-0000-4000-a000-000000000001")
TEST_AIRCRAFT_ID = UUID("00000000-0000-4000-a000-000000000002")
TEST_OFFICER = "officer.penn"

# 08:00 local at UTC-4, so UTC and local dates agree.
TEST_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ``fop`` logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, application_service):
            application_service.submit(app_id)
            logs = captured_logs()
            assert any(r["message"] == "application_submit_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fop")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    import_all_orm_models()
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def session_factory(session):
    """
    Batch executors open "their own" session through this factory.

    In-memory SQLite lives on one connection, so the executor reuses the
    test session; closing it only clears its identity map.
    """
    return lambda: session


# =============================================================================
# Clock, settings, dispatcher
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def settings():
    return FopSettings()


@pytest.fixture
def tenant_id():
    return TEST_TENANT_ID


@pytest.fixture
def dispatcher():
    return EventDispatcher()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def revenue_service(session, tenant_id, deterministic_clock, dispatcher, settings):
    return RevenueService(
        session,
        tenant_id,
        clock=deterministic_clock,
        dispatcher=dispatcher,
        settings=settings.revenue,
        eligibility=settings.eligibility,
        utc_offset_hours=settings.scheduling.utc_offset_hours,
    )


@pytest.fixture
def application_service(session, tenant_id, deterministic_clock, dispatcher, settings):
    return ApplicationService(
        session,
        tenant_id,
        clock=deterministic_clock,
        dispatcher=dispatcher,
        eligibility=settings.eligibility,
    )


@pytest.fixture
def permit_service(session, tenant_id, deterministic_clock, dispatcher):
    return PermitService(session, tenant_id, clock=deterministic_clock, dispatcher=dispatcher)


@pytest.fixture
def notifications(dispatcher, revenue_service):
    """Recording sender subscribed to the shared dispatcher, auto-invoicing on."""
    sender = RecordingNotificationSender()
    register_default_handlers(dispatcher, sender, revenue=revenue_service)
    return sender


# =============================================================================
# Builders
# =============================================================================


def application_data(**overrides) -> dict:
    """Valid create_application input: 10 seats, 5,000 kg, arriving TUPJ."""
    data = dict(
        application_type="ONE_TIME",
        operator_id=TEST_OPERATOR_ID,
        aircraft_id=TEST_AIRCRAFT_ID,
        seat_count=10,
        mtow_value=Decimal("5000"),
        mtow_unit="KG",
        purpose="CHARTER",
        arrival_airport="TUPJ",
        departure_airport="KMIA",
        estimated_flight_date=date(2026, 2, 1),
        number_of_passengers=8,
        requested_start=date(2026, 2, 1),
        requested_end=date(2026, 2, 28),
    )
    data.update(overrides)
    return data


def document_data(document_type, **overrides) -> dict:
    name = str(getattr(document_type, "value", document_type)).lower()
    data = dict(
        document_type=document_type,
        file_name=f"{name}.pdf",
        file_size=2048,
        mime_type="application/pdf",
        storage_url=f"s3://fop-documents/{name}.pdf",
        uploaded_by="operator.portal",
    )
    data.update(overrides)
    return data


@pytest.fixture
def make_application(application_service):
    """Create a DRAFT application; keyword overrides replace application_data()."""

    def _make(**overrides):
        return application_service.create_application(**application_data(**overrides)).unwrap()

    return _make


@pytest.fixture
def make_submitted_application(application_service, make_application):
    """DRAFT -> all required documents attached -> SUBMITTED."""

    def _make(**overrides):
        application = make_application(**overrides)
        for document_type in REQUIRED_DOCUMENT_TYPES:
            application_service.add_document(
                application.id, **document_data(document_type)
            ).unwrap()
        application_service.submit(application.id).unwrap()
        return application_service.get(application.id)

    return _make


@pytest.fixture
def make_reviewed_application(application_service, make_submitted_application):
    """SUBMITTED -> UNDER_REVIEW with every required document verified."""

    def _make(**overrides):
        application = make_submitted_application(**overrides)
        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()
        for document in application.documents:
            application_service.verify_document(
                application.id, document.id, actor=TEST_OFFICER
            ).unwrap()
        return application_service.get(application.id)

    return _make


@pytest.fixture
def make_ready_application(application_service, make_reviewed_application):
    """UNDER_REVIEW -> PENDING_PAYMENT with the payment completed; ready to approve."""

    def _make(**overrides):
        application = make_reviewed_application(**overrides)
        application_service.request_payment(application.id, method="CREDIT_CARD").unwrap()
        application_service.complete_payment(
            application.id, transaction_reference="TXN-0001", receipt_number="RCP-0001"
        ).unwrap()
        return application_service.get(application.id)

    return _make


@pytest.fixture
def indebted_operator(session, tenant_id, deterministic_clock):
    """
    Persist an account balance owing 5,000.00 USD across two overdue invoices.

    Returns the operator id.
    """

    def _make(operator_id: UUID | None = None) -> UUID:
        operator_id = operator_id or uuid4()
        now = deterministic_clock.now_utc()
        uow = UnitOfWork(session)
        balances = AccountBalanceRepository(session, tenant_id, uow)
        balance = OperatorAccountBalance.create(
            tenant_id=tenant_id, operator_id=operator_id, now=now
        )
        for amount in ("2500", "2500"):
            balance.record_invoice_finalized(Money.of(amount), now)
            balance.record_invoice_overdue(Money.of(amount), now)
        balances.add(balance)
        uow.save_changes()
        return operator_id

    return _make
