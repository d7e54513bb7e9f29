"""
Tests for the permit application lifecycle.

Validates:
- DRAFT -> SUBMITTED requires the four required documents
- Payment can only be requested once every required document is verified
- Approval requires a completed payment and issues exactly one permit
- Rejected, cancelled and expired applications are terminal
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fop_kernel.domain.values import Money
from fop_modules.applications.models import (
    ApplicationStatus,
    DocumentStatus,
    DocumentType,
    PaymentStatus,
    REQUIRED_DOCUMENT_TYPES,
)
from fop_modules.permits.models import PermitStatus
from tests.conftest import TEST_OFFICER, TEST_OPERATOR_ID, application_data, document_data


# =============================================================================
# Creation
# =============================================================================


class TestCreateApplication:
    def test_create_draft(self, application_service, make_application):
        application = make_application()

        assert application.status is ApplicationStatus.DRAFT
        assert application.application_number.startswith("FOP-OT-20260115-")
        assert application.calculated_fee == Money.of("350.00")
        assert application.mtow.to_kg() == Decimal("5000")
        assert application_service.find_by_number(application.application_number).id == application.id

    def test_list_for_operator(self, application_service, make_application):
        first = make_application()
        second = make_application(application_type="BLANKET")

        listed = application_service.list_for_operator(TEST_OPERATOR_ID)

        fees = {a.id: a.calculated_fee for a in listed}
        assert fees == {first.id: Money.of("350.00"), second.id: Money.of("875.00")}

    @pytest.mark.parametrize(
        "overrides",
        [
            {"arrival_airport": "TUP"},
            {"seat_count": -1},
            {"mtow_value": Decimal("0")},
            {"requested_end": date(2026, 1, 31)},
            {"purpose": "OTHER"},
        ],
    )
    def test_invalid_input_rejected(self, application_service, overrides):
        result = application_service.create_application(**application_data(**overrides))

        assert result.is_failure
        assert result.error.code == "Error.Validation"


# =============================================================================
# Documents and submission
# =============================================================================


class TestSubmission:
    def test_submit_without_documents_fails(self, application_service, make_application):
        application = make_application()

        result = application_service.submit(application.id)

        assert result.error.code == "Application.InvalidOperation"
        assert result.error.cause_code == "Application.MissingDocuments"
        assert application_service.get(application.id).status is ApplicationStatus.DRAFT

    def test_submit_with_three_of_four_documents_fails(self, application_service, make_application):
        application = make_application()
        for document_type in REQUIRED_DOCUMENT_TYPES[:3]:
            application_service.add_document(application.id, **document_data(document_type)).unwrap()

        result = application_service.submit(application.id)

        assert result.error.cause_code == "Application.MissingDocuments"
        assert "INSURANCE_CERTIFICATE" in result.error.message

    def test_submit_with_required_documents(self, make_submitted_application):
        application = make_submitted_application()

        assert application.status is ApplicationStatus.SUBMITTED
        assert application.submitted_at is not None
        assert len(application.documents) == 4

    def test_same_type_replaces_previous_document(self, application_service, make_application):
        application = make_application()
        doc_type = DocumentType.CERTIFICATE_OF_AIRWORTHINESS
        application_service.add_document(application.id, **document_data(doc_type)).unwrap()
        application_service.add_document(
            application.id, **document_data(doc_type, file_name="renewed.pdf")
        ).unwrap()

        documents = application_service.get(application.id).documents

        assert [d.file_name for d in documents] == ["renewed.pdf"]

    def test_documents_locked_after_submission(self, application_service, make_submitted_application):
        application = make_submitted_application()

        result = application_service.add_document(
            application.id, **document_data(DocumentType.NOISE_CERTIFICATE)
        )

        assert result.error.cause_code == "Application.InvalidStatus"

    def test_oversized_document_rejected(self, application_service, make_application):
        application = make_application()
        result = application_service.add_document(
            application.id,
            **document_data(DocumentType.OTHER, file_size=11 * 1024 * 1024),
        )
        assert result.error.code == "Error.Validation"


# =============================================================================
# Review and document verification
# =============================================================================


class TestReview:
    def test_start_review(self, application_service, make_submitted_application):
        application = make_submitted_application()

        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()

        reviewed = application_service.get(application.id)
        assert reviewed.status is ApplicationStatus.UNDER_REVIEW
        assert reviewed.reviewed_by == TEST_OFFICER

    def test_rejected_document_moves_to_pending_documents(
        self, application_service, make_submitted_application
    ):
        application = make_submitted_application()
        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()
        document = application.documents[0]

        application_service.reject_document(
            application.id, document.id, actor=TEST_OFFICER, reason="Illegible scan"
        ).unwrap()

        current = application_service.get(application.id)
        assert current.status is ApplicationStatus.PENDING_DOCUMENTS
        assert current.documents[0].status is DocumentStatus.REJECTED

    def test_replacement_documents_return_to_review(
        self, application_service, make_submitted_application
    ):
        application = make_submitted_application()
        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()
        rejected = application.documents[0]
        application_service.reject_document(
            application.id, rejected.id, actor=TEST_OFFICER, reason="Expired certificate"
        ).unwrap()

        replacement = application_service.add_document(
            application.id, **document_data(rejected.document_type, file_name="new.pdf")
        ).unwrap()
        for document in application_service.get(application.id).documents:
            application_service.verify_document(
                application.id, document.id, actor=TEST_OFFICER
            ).unwrap()

        current = application_service.get(application.id)
        assert current.status is ApplicationStatus.UNDER_REVIEW
        assert replacement.id in {d.id for d in current.documents}

    def test_expired_document_cannot_be_verified(self, application_service, make_application):
        application = make_application()
        for document_type in REQUIRED_DOCUMENT_TYPES:
            extra = {}
            if document_type is DocumentType.INSURANCE_CERTIFICATE:
                extra["expiry_date"] = date(2026, 1, 1)
            application_service.add_document(
                application.id, **document_data(document_type, **extra)
            ).unwrap()
        application_service.submit(application.id).unwrap()
        insurance = next(
            d for d in application_service.get(application.id).documents
            if d.document_type is DocumentType.INSURANCE_CERTIFICATE
        )

        result = application_service.verify_document(
            application.id, insurance.id, actor=TEST_OFFICER
        )

        assert result.error.cause_code == "Application.DocumentExpired"


# =============================================================================
# Payment
# =============================================================================


class TestPayment:
    def test_request_payment_requires_verified_documents(
        self, application_service, make_submitted_application
    ):
        application = make_submitted_application()
        application_service.start_review(application.id, actor=TEST_OFFICER).unwrap()
        for document in application.documents[:3]:
            application_service.verify_document(
                application.id, document.id, actor=TEST_OFFICER
            ).unwrap()

        result = application_service.request_payment(application.id, method="CREDIT_CARD")

        assert result.error.code == "Payment.InvalidOperation"
        assert result.error.cause_code == "Application.DocumentsNotVerified"
        assert application_service.get(application.id).status is ApplicationStatus.UNDER_REVIEW

    def test_request_payment_uses_current_fee(self, application_service, make_reviewed_application):
        application = make_reviewed_application()

        payment = application_service.request_payment(
            application.id, method="BANK_TRANSFER"
        ).unwrap()

        assert payment.amount == Money.of("350.00")
        assert payment.status is PaymentStatus.PENDING
        assert application_service.get(application.id).status is ApplicationStatus.PENDING_PAYMENT

    def test_complete_payment(self, make_ready_application):
        application = make_ready_application()

        assert application.payment.status is PaymentStatus.COMPLETED
        assert application.payment.receipt_number == "RCP-0001"

    def test_failed_payment_blocks_approval(self, application_service, make_reviewed_application):
        application = make_reviewed_application()
        application_service.request_payment(application.id, method="CREDIT_CARD").unwrap()
        application_service.fail_payment(application.id, "Card declined").unwrap()

        result = application_service.approve(application.id, approved_by=TEST_OFFICER)

        assert result.error.cause_code == "Application.PaymentInvalid"


# =============================================================================
# Approval and terminal states
# =============================================================================


class TestApproval:
    def test_approve_issues_permit(self, application_service, permit_service, make_ready_application):
        application = make_ready_application()

        permit = application_service.approve(
            application.id, approved_by=TEST_OFFICER, notes="All in order"
        ).unwrap()

        approved = application_service.get(application.id)
        assert approved.status is ApplicationStatus.APPROVED
        assert approved.approved_by == TEST_OFFICER
        assert permit.status is PermitStatus.ACTIVE
        assert permit.permit_number.startswith("BVI-FOP-OT-2026-")
        assert permit.valid_from == application.requested_start
        assert permit.valid_until == application.requested_end
        assert permit.fees_paid == Money.of("350.00")
        assert permit_service.find_by_application(application.id).id == permit.id

    def test_approve_without_payment_fails(self, application_service, make_reviewed_application):
        application = make_reviewed_application()

        result = application_service.approve(application.id, approved_by=TEST_OFFICER)

        assert result.is_failure
        assert application_service.get(application.id).status is ApplicationStatus.UNDER_REVIEW

    def test_approved_application_is_terminal(self, application_service, make_ready_application):
        application = make_ready_application()
        application_service.approve(application.id, approved_by=TEST_OFFICER).unwrap()

        result = application_service.approve(application.id, approved_by=TEST_OFFICER)

        assert result.error.cause_code == "Application.InvalidStatus"

    def test_reject(self, application_service, make_submitted_application):
        application = make_submitted_application()

        application_service.reject(
            application.id, rejected_by=TEST_OFFICER, reason="Operator not certified"
        ).unwrap()

        rejected = application_service.get(application.id)
        assert rejected.status is ApplicationStatus.REJECTED
        assert rejected.is_terminal
        result = application_service.start_review(application.id, actor=TEST_OFFICER)
        assert result.error.cause_code == "Application.InvalidStatus"

    def test_cancel_cancels_pending_payment(self, application_service, make_reviewed_application):
        application = make_reviewed_application()
        application_service.request_payment(application.id, method="CREDIT_CARD").unwrap()

        application_service.cancel(application.id, reason="Flight cancelled").unwrap()

        cancelled = application_service.get(application.id)
        assert cancelled.status is ApplicationStatus.CANCELLED
        assert cancelled.payment.status is PaymentStatus.CANCELLED

    def test_expire(self, application_service, make_application):
        application = make_application()

        application_service.expire(application.id).unwrap()

        assert application_service.get(application.id).status is ApplicationStatus.EXPIRED

    def test_unknown_application(self, application_service):
        result = application_service.submit(uuid4())

        assert result.error.code == "Error.NotFound"
