"""
End-to-end flows through the public services.

Application to permit under a stored fee configuration, and a manual
invoice from creation to full payment.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from fop_kernel.domain.values import Money
from fop_modules.applications.models import ApplicationStatus, PaymentStatus
from fop_modules.permits.models import PermitStatus
from fop_modules.revenue.models import InvoiceStatus
from tests.conftest import REQUIRED_DOCUMENT_TYPES, TEST_OFFICER, TEST_OPERATOR_ID, application_data, document_data


class TestApplicationToPermit:
    def test_full_flow(self, application_service, permit_service, revenue_service, notifications):
        application_service.create_fee_configuration(
            base_fee=Decimal("1000"),
            per_seat_fee=Decimal("0"),
            per_kg_fee=Decimal("0"),
            modified_by="finance.admin",
        ).unwrap()

        application = application_service.create_application(**application_data()).unwrap()
        assert application.status is ApplicationStatus.DRAFT
        assert application.calculated_fee == Money.of("1000.00")

        for document_type in REQUIRED_DOCUMENT_TYPES:
            application_service.add_document(application.id, **document_data(document_type)).unwrap()
        application_service.submit(application.id).unwrap()

        pre_arrival = revenue_service.list_invoices_for_application(application.id)
        assert len(pre_arrival) == 1
        assert pre_arrival[0].status is InvoiceStatus.DRAFT

        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()
        for document in application_service.get(application.id).documents:
            application_service.verify_document(application.id, document.id, actor=TEST_OFFICER).unwrap()
        payment = application_service.request_payment(application.id, method="BANK_TRANSFER").unwrap()
        assert payment.amount == Money.of("1000.00")
        application_service.complete_payment(
            application.id, transaction_reference="WIRE-77", receipt_number="RCP-77",
        ).unwrap()

        permit = application_service.approve(application.id, approved_by=TEST_OFFICER).unwrap()

        approved = application_service.get(application.id)
        assert approved.status is ApplicationStatus.APPROVED
        assert approved.payment.status is PaymentStatus.COMPLETED
        assert permit.status is PermitStatus.ACTIVE
        assert permit.fees_paid == Money.of("1000.00")
        assert permit.valid_from == date(2026, 2, 1)
        assert permit.valid_until == date(2026, 2, 28)
        assert permit_service.find_by_application(application.id).id == permit.id
        assert [p.id for p in permit_service.list_for_operator(TEST_OPERATOR_ID)] == [permit.id]
        assert len(notifications.of_kind("application_approved")) == 1


class TestInvoiceToPayment:
    def test_manual_invoice_paid_in_full(self, revenue_service):
        operator_id = uuid4()
        invoice = revenue_service.create_invoice(
            operator_id=operator_id,
            arrival_airport="TUPJ",
            operation_type="GENERAL_AVIATION",
            flight_date=date(2026, 1, 20),
            mtow_value=Decimal("8000"),
            seat_count=6,
        ).unwrap()
        revenue_service.add_line_item(
            invoice.id, category="LANDING", description="Landing Fee",
            quantity=Decimal("1"), unit_rate=Decimal("500"),
        ).unwrap()
        revenue_service.add_line_item(
            invoice.id, category="SECURITY", description="Security Fee",
            quantity=Decimal("2"), unit_rate=Decimal("5"),
        ).unwrap()

        finalized = revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()
        assert finalized.status is InvoiceStatus.PENDING
        assert finalized.total_amount == Money.of("510")
        assert revenue_service.get_account_balance(operator_id).current_balance == Money.of("510")
        # Pending, not overdue: still eligible
        assert revenue_service.check_eligibility(operator_id).eligible

        payment = revenue_service.record_payment(
            invoice.id, amount=Decimal("510"), method="BANK_TRANSFER", recorded_by=TEST_OFFICER,
        ).unwrap()
        assert payment.receipt_number.startswith("BVIA-RCP-")

        paid = revenue_service.get_invoice(invoice.id)
        assert paid.status is InvoiceStatus.PAID
        assert paid.balance_due == Money.zero()
        assert revenue_service.get_account_balance(operator_id).current_balance == Money.zero()
