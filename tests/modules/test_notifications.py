"""
Tests for post-commit notification handlers.

Validates:
- Submission notifies the applicant and the officers
- Applications arriving at a BVI airport get a draft pre-arrival invoice
- Approval, rejection, overdue and payment events reach the sender
- A failing handler never undoes the committed change
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fop_batch.jobs import build_executor, build_overdue_task
from fop_config.schema import RevenueSettings
from fop_kernel.domain.values import Money
from fop_modules.applications.events import ApplicationSubmitted
from fop_modules.applications.models import ApplicationStatus
from fop_modules.notifications import RecordingNotificationSender, register_default_handlers
from fop_modules.notifications.handlers import operation_type_for
from fop_modules.revenue.models import FeeCategory, InvoiceStatus, OperationType
from fop_modules.revenue.service import RevenueService
from tests.conftest import TEST_OFFICER, TEST_OPERATOR_ID


class TestSubmissionNotifications:
    def test_submit_notifies_applicant_and_officers(
        self, notifications, make_submitted_application
    ):
        application = make_submitted_application()

        submitted = notifications.of_kind("application_submitted")
        assert [n.params["application_number"] for n in submitted] == [
            application.application_number
        ]
        officer = notifications.of_kind("officer_new_application")[0]
        assert officer.params["fee"] == Money.of("350")
        assert officer.params["application_type"] == "ONE_TIME"

    def test_bvi_arrival_gets_pre_arrival_invoice(
        self, notifications, revenue_service, make_submitted_application
    ):
        application = make_submitted_application()

        invoices = revenue_service.list_invoices_for_application(application.id)

        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.status is InvoiceStatus.DRAFT
        assert invoice.operator_id == TEST_OPERATOR_ID
        assert invoice.operation_type is OperationType.CHARTER
        assert invoice.notes == f"Auto-generated from FOP Application {application.application_number}"
        assert [li.category for li in invoice.line_items][:2] == [
            FeeCategory.LANDING, FeeCategory.NAVIGATION,
        ]
        # 5,000 kg = 11,023.10 lbs: 12 x $5 landing, $5 nav, 8 pax x ($15 + $5 + $7)
        assert invoice.total_amount == Money.of("281")

    def test_foreign_arrival_skips_invoice(
        self, notifications, revenue_service, make_submitted_application, captured_logs
    ):
        application = make_submitted_application(arrival_airport="TNCM")

        assert revenue_service.list_invoices_for_application(application.id) == []
        assert any(
            r["message"] == "pre_arrival_invoice_skipped" and r["arrival_airport"] == "TNCM"
            for r in captured_logs()
        )

    def test_auto_invoice_can_be_disabled(
        self, dispatcher, revenue_service, make_submitted_application
    ):
        register_default_handlers(
            dispatcher, RecordingNotificationSender(), revenue=revenue_service, auto_invoice=False
        )

        application = make_submitted_application()

        assert revenue_service.list_invoices_for_application(application.id) == []

    def test_auto_invoice_follows_revenue_setting(
        self, session, tenant_id, deterministic_clock, dispatcher, make_submitted_application
    ):
        revenue = RevenueService(
            session, tenant_id, clock=deterministic_clock, dispatcher=dispatcher,
            settings=RevenueSettings(auto_invoice_on_submission=False),
        )
        register_default_handlers(dispatcher, RecordingNotificationSender(), revenue=revenue)

        application = make_submitted_application()

        assert revenue.list_invoices_for_application(application.id) == []


class TestDecisionNotifications:
    def test_approval(self, notifications, application_service, make_ready_application):
        application = make_ready_application()

        permit = application_service.approve(application.id, approved_by=TEST_OFFICER).unwrap()

        approved = notifications.of_kind("application_approved")
        assert len(approved) == 1
        assert approved[0].params["permit_number"] == permit.permit_number
        assert approved[0].params["application_number"] == application.application_number

    def test_rejection(self, notifications, application_service, make_submitted_application):
        application = make_submitted_application()

        application_service.reject(
            application.id, rejected_by=TEST_OFFICER, reason="Aircraft not registered"
        ).unwrap()

        rejected = notifications.of_kind("application_rejected")
        assert [n.params["reason"] for n in rejected] == ["Aircraft not registered"]

    def test_failed_operation_sends_nothing(
        self, notifications, application_service, make_reviewed_application
    ):
        application = make_reviewed_application()

        assert application_service.approve(application.id, approved_by=TEST_OFFICER).is_failure
        assert notifications.of_kind("application_approved") == []


class TestRevenueNotifications:
    @pytest.fixture
    def pending_invoice(self, revenue_service):
        invoice = revenue_service.create_invoice(
            operator_id=TEST_OPERATOR_ID, arrival_airport="TUPJ",
            operation_type="GENERAL_AVIATION", flight_date=date(2026, 2, 1),
            mtow_value=Decimal("12000"), seat_count=6,
        ).unwrap()
        revenue_service.add_line_item(
            invoice.id, category="NAVIGATION", description="Navigation Fee",
            quantity=Decimal("1"), unit_rate=Decimal("80"),
        ).unwrap()
        return revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()

    def test_payment_confirmation(self, notifications, revenue_service, pending_invoice):
        payment = revenue_service.record_payment(
            pending_invoice.id, amount=Decimal("80"), method="CREDIT_CARD",
            recorded_by=TEST_OFFICER,
        ).unwrap()

        confirmation = notifications.of_kind("payment_confirmation")[0]
        assert confirmation.params["amount"] == Money.of("80")
        assert confirmation.params["receipt_number"] == payment.receipt_number

    def test_overdue_notification(
        self, notifications, pending_invoice, session_factory, settings,
        deterministic_clock, dispatcher,
    ):
        deterministic_clock.set_time(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))

        build_executor(session_factory, settings, deterministic_clock, dispatcher).run(
            build_overdue_task(settings)
        )

        overdue = notifications.of_kind("invoice_overdue")
        assert len(overdue) == 1
        assert overdue[0].params["invoice_number"] == pending_invoice.invoice_number
        assert overdue[0].params["days_overdue"] == 15
        assert overdue[0].params["balance_due"] == Money.of("80")


class TestHandlerFailures:
    def test_failing_handler_does_not_undo_submission(
        self, dispatcher, application_service, make_submitted_application, captured_logs
    ):
        def broken(event):
            raise RuntimeError("mail server down")

        dispatcher.subscribe(ApplicationSubmitted, broken)

        application = make_submitted_application()

        assert application_service.get(application.id).status is ApplicationStatus.SUBMITTED
        assert any(r["message"] == "event_handler_failed" for r in captured_logs())


@pytest.mark.parametrize(
    "application_type, purpose, expected",
    [
        ("EMERGENCY", "PRIVATE", OperationType.EMERGENCY),
        ("ONE_TIME", "CHARTER", OperationType.CHARTER),
        ("BLANKET", "CARGO", OperationType.CHARTER),
        ("ONE_TIME", "MEDEVAC", OperationType.EMERGENCY),
        ("ONE_TIME", "TECHNICAL_LANDING", OperationType.GENERAL_AVIATION),
        ("ONE_TIME", "PRIVATE", OperationType.GENERAL_AVIATION),
    ],
)
def test_operation_type_for(application_type, purpose, expected):
    assert operation_type_for(application_type, purpose) is expected
