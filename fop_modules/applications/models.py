"""
Permit Application Domain Models (``fop_modules.applications.models``).

Responsibility
--------------
The permit-application aggregate and the entities it owns: required
documents, the single application payment and fee waivers.  Also the
versioned ``FeeConfiguration`` record consumed by the fee engine.

Architecture position
---------------------
**Modules layer** -- pure domain.  No I/O, no database.  Timestamps come in
as arguments so the aggregate never reads the wall clock.

Invariants enforced
-------------------
* Status only moves along ``APPLICATION_WORKFLOW``.
* ``calculated_fee`` changes only through ``override_fee`` or
  ``approve_waiver``, each recording who changed it and why.
* At most one PENDING waiver at a time.
* Every precondition is checked before any field changes, so a raised
  exception never leaves the aggregate half-mutated.

Failure modes
-------------
* ``InvalidApplicationStateError`` for operations illegal in the status.
* ``MissingDocumentsError`` / ``DocumentsNotVerifiedError`` for document
  prerequisites; ``ApplicationPaymentError`` for payment prerequisites.
* ``WaiverError`` subclasses and ``FeeOverrideError`` for fee adjustments.
* ``ValueError`` from factories on missing or malformed required input.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from fop_kernel.domain.events import AggregateRoot, Entity
from fop_kernel.domain.values import Currency, Money, Weight, to_decimal
from fop_kernel.domain.workflow import Workflow
from fop_kernel.exceptions import (
    ApplicationPaymentError,
    DocumentExpiredError,
    DocumentNotFoundError,
    DocumentsNotVerifiedError,
    FeeConfigurationError,
    FeeOverrideError,
    InvalidApplicationStateError,
    MissingDocumentsError,
    PendingWaiverExistsError,
    WaiverError,
    WaiverNotFoundError,
)
from fop_modules._numbering import generate_number
from fop_modules.applications import events
from fop_modules.applications.workflows import APPLICATION_WORKFLOW


class ApplicationType(str, Enum):
    ONE_TIME = "ONE_TIME"
    BLANKET = "BLANKET"
    EMERGENCY = "EMERGENCY"

    @property
    def code(self) -> str:
        return {"ONE_TIME": "OT", "BLANKET": "BL", "EMERGENCY": "EM"}[self.value]


class ApplicationStatus(str, Enum):
    """Must align with ``workflows.APPLICATION_WORKFLOW.states``."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    PENDING_DOCUMENTS = "PENDING_DOCUMENTS"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class FlightPurpose(str, Enum):
    CHARTER = "CHARTER"
    PRIVATE = "PRIVATE"
    CARGO = "CARGO"
    MEDEVAC = "MEDEVAC"
    TECHNICAL_LANDING = "TECHNICAL_LANDING"
    OTHER = "OTHER"


class DocumentType(str, Enum):
    CERTIFICATE_OF_AIRWORTHINESS = "CERTIFICATE_OF_AIRWORTHINESS"
    CERTIFICATE_OF_REGISTRATION = "CERTIFICATE_OF_REGISTRATION"
    AIR_OPERATOR_CERTIFICATE = "AIR_OPERATOR_CERTIFICATE"
    INSURANCE_CERTIFICATE = "INSURANCE_CERTIFICATE"
    NOISE_CERTIFICATE = "NOISE_CERTIFICATE"
    CREW_LICENSES = "CREW_LICENSES"
    OTHER = "OTHER"


REQUIRED_DOCUMENT_TYPES: tuple[DocumentType, ...] = (
    DocumentType.CERTIFICATE_OF_AIRWORTHINESS,
    DocumentType.CERTIFICATE_OF_REGISTRATION,
    DocumentType.AIR_OPERATOR_CERTIFICATE,
    DocumentType.INSURANCE_CERTIFICATE,
)


class DocumentStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    WIRE_TRANSFER = "WIRE_TRANSFER"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class WaiverType(str, Enum):
    EMERGENCY = "EMERGENCY"
    HUMANITARIAN = "HUMANITARIAN"
    GOVERNMENT = "GOVERNMENT"
    DIPLOMATIC = "DIPLOMATIC"
    MILITARY = "MILITARY"
    OTHER = "OTHER"


class WaiverStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


MIN_WAIVER_REJECTION_REASON = 10
MIN_FEE_OVERRIDE_JUSTIFICATION = 10


def _require(value: str | None, label: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{label} is required")
    return str(value).strip()


# -----------------------------------------------------------------------------
# Value objects
# -----------------------------------------------------------------------------


class FlightDetails:
    """Immutable description of the flight the permit is for."""

    __slots__ = (
        "purpose",
        "purpose_description",
        "arrival_airport",
        "departure_airport",
        "estimated_flight_date",
        "number_of_passengers",
        "flight_number",
    )

    def __init__(
        self,
        purpose: FlightPurpose | str,
        arrival_airport: str,
        departure_airport: str,
        estimated_flight_date: date,
        number_of_passengers: int = 0,
        purpose_description: str | None = None,
        flight_number: str | None = None,
    ):
        purpose = FlightPurpose(purpose)
        if purpose is FlightPurpose.OTHER and not (purpose_description or "").strip():
            raise ValueError("Purpose description is required for OTHER purpose")
        if number_of_passengers < 0:
            raise ValueError("Number of passengers cannot be negative")
        object.__setattr__(self, "purpose", purpose)
        object.__setattr__(self, "purpose_description", purpose_description)
        object.__setattr__(self, "arrival_airport", _require(arrival_airport, "Arrival airport").upper())
        object.__setattr__(self, "departure_airport", _require(departure_airport, "Departure airport").upper())
        object.__setattr__(self, "estimated_flight_date", estimated_flight_date)
        object.__setattr__(self, "number_of_passengers", number_of_passengers)
        object.__setattr__(self, "flight_number", flight_number)

    def __setattr__(self, name, value):
        raise AttributeError("FlightDetails is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlightDetails):
            return NotImplemented
        return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)

    def __hash__(self) -> int:
        return hash(tuple(getattr(self, s) for s in self.__slots__))


# -----------------------------------------------------------------------------
# Owned entities
# -----------------------------------------------------------------------------


class ApplicationDocument(Entity):
    """An uploaded supporting document; the file itself lives in blob storage."""

    @classmethod
    def create(
        cls,
        document_type: DocumentType | str,
        file_name: str,
        file_size: int,
        mime_type: str,
        storage_url: str,
        uploaded_by: str,
        uploaded_at: datetime,
        expiry_date: date | None = None,
    ) -> ApplicationDocument:
        if file_size <= 0:
            raise ValueError("File size must be positive")
        return cls.restore(
            id=uuid4(),
            document_type=DocumentType(document_type),
            file_name=_require(file_name, "File name"),
            file_size=file_size,
            mime_type=_require(mime_type, "MIME type"),
            storage_url=_require(storage_url, "Storage URL"),
            uploaded_by=_require(uploaded_by, "Uploaded by"),
            uploaded_at=uploaded_at,
            expiry_date=expiry_date,
            status=DocumentStatus.PENDING,
            verified_by=None,
            verified_at=None,
            rejection_reason=None,
        )

    document_type = property(lambda self: self._document_type)
    file_name = property(lambda self: self._file_name)
    file_size = property(lambda self: self._file_size)
    mime_type = property(lambda self: self._mime_type)
    storage_url = property(lambda self: self._storage_url)
    uploaded_by = property(lambda self: self._uploaded_by)
    uploaded_at = property(lambda self: self._uploaded_at)
    expiry_date = property(lambda self: self._expiry_date)
    status = property(lambda self: self._status)
    verified_by = property(lambda self: self._verified_by)
    verified_at = property(lambda self: self._verified_at)
    rejection_reason = property(lambda self: self._rejection_reason)

    def is_expired(self, as_of: date) -> bool:
        return self._expiry_date is not None and self._expiry_date < as_of

    def days_until_expiry(self, as_of: date) -> int | None:
        if self._expiry_date is None:
            return None
        return (self._expiry_date - as_of).days

    def verify(self, verified_by: str, now: datetime) -> None:
        verified_by = _require(verified_by, "Verified by")
        if self.is_expired(now.date()):
            self._status = DocumentStatus.EXPIRED
            raise DocumentExpiredError(self._document_type.value, self._expiry_date)
        self._status = DocumentStatus.VERIFIED
        self._verified_by = verified_by
        self._verified_at = now
        self._rejection_reason = None

    def reject(self, rejected_by: str, reason: str, now: datetime) -> None:
        reason = _require(reason, "Rejection reason")
        self._status = DocumentStatus.REJECTED
        self._verified_by = _require(rejected_by, "Rejected by")
        self._verified_at = now
        self._rejection_reason = reason


class ApplicationPayment(Entity):
    """The single fee payment attached to an application."""

    @classmethod
    def create(cls, amount: Money, method: PaymentMethod | str, now: datetime) -> ApplicationPayment:
        if not amount.is_positive:
            raise ApplicationPaymentError("Payment amount must be positive")
        return cls.restore(
            id=uuid4(),
            amount=amount,
            method=PaymentMethod(method),
            status=PaymentStatus.PENDING,
            transaction_reference=None,
            receipt_number=None,
            completed_at=None,
            failure_reason=None,
            created_at=now,
        )

    amount = property(lambda self: self._amount)
    method = property(lambda self: self._method)
    status = property(lambda self: self._status)
    transaction_reference = property(lambda self: self._transaction_reference)
    receipt_number = property(lambda self: self._receipt_number)
    completed_at = property(lambda self: self._completed_at)
    failure_reason = property(lambda self: self._failure_reason)
    created_at = property(lambda self: self._created_at)

    @property
    def is_completed(self) -> bool:
        return self._status is PaymentStatus.COMPLETED

    def complete(self, transaction_reference: str, receipt_number: str, now: datetime) -> None:
        if self._status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            raise ApplicationPaymentError(
                f"Cannot complete payment in {self._status.value} status",
                payment_status=self._status.value,
            )
        self._transaction_reference = _require(transaction_reference, "Transaction reference")
        self._receipt_number = _require(receipt_number, "Receipt number")
        self._status = PaymentStatus.COMPLETED
        self._completed_at = now

    def fail(self, reason: str) -> None:
        if self._status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            raise ApplicationPaymentError(
                f"Cannot fail payment in {self._status.value} status",
                payment_status=self._status.value,
            )
        self._failure_reason = _require(reason, "Failure reason")
        self._status = PaymentStatus.FAILED

    def cancel(self) -> None:
        if self._status is PaymentStatus.COMPLETED:
            raise ApplicationPaymentError(
                "Cannot cancel a completed payment", payment_status=self._status.value
            )
        self._status = PaymentStatus.CANCELLED


class Waiver(Entity):
    """A fee waiver request and its decision."""

    @classmethod
    def create(cls, waiver_type: WaiverType | str, reason: str, requested_by: str, now: datetime) -> Waiver:
        return cls.restore(
            id=uuid4(),
            waiver_type=WaiverType(waiver_type),
            status=WaiverStatus.PENDING,
            reason=_require(reason, "Waiver reason"),
            requested_by=_require(requested_by, "Requested by"),
            requested_at=now,
            original_fee=None,
            waived_amount=None,
            waiver_percentage=None,
            approved_by=None,
            approved_at=None,
            rejected_by=None,
            rejected_at=None,
            rejection_reason=None,
        )

    waiver_type = property(lambda self: self._waiver_type)
    status = property(lambda self: self._status)
    reason = property(lambda self: self._reason)
    requested_by = property(lambda self: self._requested_by)
    requested_at = property(lambda self: self._requested_at)
    original_fee = property(lambda self: self._original_fee)
    waived_amount = property(lambda self: self._waived_amount)
    waiver_percentage = property(lambda self: self._waiver_percentage)
    approved_by = property(lambda self: self._approved_by)
    approved_at = property(lambda self: self._approved_at)
    rejected_by = property(lambda self: self._rejected_by)
    rejected_at = property(lambda self: self._rejected_at)
    rejection_reason = property(lambda self: self._rejection_reason)

    @property
    def is_pending(self) -> bool:
        return self._status is WaiverStatus.PENDING

    def _ensure_pending(self, action: str) -> None:
        if not self.is_pending:
            raise WaiverError(f"Cannot {action} waiver in {self._status.value} status")

    def approve(self, approved_by: str, percentage: Decimal, original_fee: Money, now: datetime) -> Money:
        """Record approval; returns the waived amount."""
        self._ensure_pending("approve")
        approved_by = _require(approved_by, "Approved by")
        percentage = to_decimal(percentage)
        if not Decimal("0") <= percentage <= Decimal("100"):
            raise WaiverError(f"Waiver percentage must be between 0 and 100: {percentage}")
        waived = original_fee * (percentage / Decimal("100"))
        self._status = WaiverStatus.APPROVED
        self._original_fee = original_fee
        self._waived_amount = waived
        self._waiver_percentage = percentage
        self._approved_by = approved_by
        self._approved_at = now
        return waived

    def reject(self, rejected_by: str, reason: str, now: datetime) -> None:
        self._ensure_pending("reject")
        rejected_by = _require(rejected_by, "Rejected by")
        reason = _require(reason, "Rejection reason")
        if len(reason) < MIN_WAIVER_REJECTION_REASON:
            raise WaiverError(
                f"Rejection reason must be at least {MIN_WAIVER_REJECTION_REASON} characters"
            )
        self._status = WaiverStatus.REJECTED
        self._rejected_by = rejected_by
        self._rejected_at = now
        self._rejection_reason = reason


# -----------------------------------------------------------------------------
# Aggregate
# -----------------------------------------------------------------------------


class Application(AggregateRoot):
    """
    Foreign operator permit application.

    Contract: construct only through ``create``; mutate only through the
    named operations below.  Status changes are validated against
    ``APPLICATION_WORKFLOW``.
    """

    workflow: Workflow = APPLICATION_WORKFLOW

    @classmethod
    def create(
        cls,
        *,
        tenant_id: str,
        application_type: ApplicationType | str,
        operator_id: UUID,
        aircraft_id: UUID,
        flight_details: FlightDetails,
        requested_start: date,
        requested_end: date,
        seat_count: int,
        mtow: Weight,
        calculated_fee: Money,
        now: datetime,
    ) -> Application:
        if operator_id is None:
            raise ValueError("Operator ID is required")
        if aircraft_id is None:
            raise ValueError("Aircraft ID is required")
        if requested_end < requested_start:
            raise ValueError("Requested end date must not precede start date")
        if seat_count < 0:
            raise ValueError("Seat count cannot be negative")
        application_type = ApplicationType(application_type)
        return cls.restore(
            id=uuid4(),
            tenant_id=_require(tenant_id, "Tenant ID"),
            application_number=generate_number(f"FOP-{application_type.code}", now.date()),
            application_type=application_type,
            status=ApplicationStatus.DRAFT,
            operator_id=operator_id,
            aircraft_id=aircraft_id,
            flight_details=flight_details,
            requested_start=requested_start,
            requested_end=requested_end,
            seat_count=seat_count,
            mtow=mtow,
            calculated_fee=calculated_fee,
            original_fee=None,
            fee_overridden_by=None,
            fee_override_justification=None,
            fee_overridden_at=None,
            documents=[],
            payment=None,
            waivers=[],
            submitted_at=None,
            reviewed_by=None,
            reviewed_at=None,
            review_notes=None,
            approved_by=None,
            approved_at=None,
            rejected_by=None,
            rejection_reason=None,
            cancelled_at=None,
            cancellation_reason=None,
            expired_at=None,
            created_at=now,
            updated_at=now,
        )

    # -- read-only state -----------------------------------------------------

    tenant_id = property(lambda self: self._tenant_id)
    application_number = property(lambda self: self._application_number)
    application_type = property(lambda self: self._application_type)
    status = property(lambda self: self._status)
    operator_id = property(lambda self: self._operator_id)
    aircraft_id = property(lambda self: self._aircraft_id)
    flight_details = property(lambda self: self._flight_details)
    requested_start = property(lambda self: self._requested_start)
    requested_end = property(lambda self: self._requested_end)
    seat_count = property(lambda self: self._seat_count)
    mtow = property(lambda self: self._mtow)
    calculated_fee = property(lambda self: self._calculated_fee)
    original_fee = property(lambda self: self._original_fee)
    fee_overridden_by = property(lambda self: self._fee_overridden_by)
    fee_override_justification = property(lambda self: self._fee_override_justification)
    fee_overridden_at = property(lambda self: self._fee_overridden_at)
    payment = property(lambda self: self._payment)
    submitted_at = property(lambda self: self._submitted_at)
    reviewed_by = property(lambda self: self._reviewed_by)
    reviewed_at = property(lambda self: self._reviewed_at)
    review_notes = property(lambda self: self._review_notes)
    approved_by = property(lambda self: self._approved_by)
    approved_at = property(lambda self: self._approved_at)
    rejected_by = property(lambda self: self._rejected_by)
    rejection_reason = property(lambda self: self._rejection_reason)
    cancelled_at = property(lambda self: self._cancelled_at)
    cancellation_reason = property(lambda self: self._cancellation_reason)
    expired_at = property(lambda self: self._expired_at)
    created_at = property(lambda self: self._created_at)
    updated_at = property(lambda self: self._updated_at)

    @property
    def documents(self) -> tuple[ApplicationDocument, ...]:
        return tuple(self._documents)

    @property
    def waivers(self) -> tuple[Waiver, ...]:
        return tuple(self._waivers)

    @property
    def pending_waiver(self) -> Waiver | None:
        return next((w for w in self._waivers if w.is_pending), None)

    @property
    def is_terminal(self) -> bool:
        return self.workflow.is_terminal(self._status.value)

    # -- helpers -------------------------------------------------------------

    def _check(self, action: str) -> ApplicationStatus:
        """Validate ``action`` from the current status; returns the target status."""
        transition = self.workflow.find(self._status.value, action)
        if transition is None:
            raise InvalidApplicationStateError(
                self._application_number, self._status.value, action
            )
        return ApplicationStatus(transition.to_state)

    def _touch(self, now: datetime) -> None:
        self._updated_at = now

    def _base_event(self) -> dict:
        return {
            "application_id": self._id,
            "application_number": self._application_number,
            "operator_id": self._operator_id,
        }

    def _document(self, document_id: UUID) -> ApplicationDocument:
        for doc in self._documents:
            if doc.id == document_id:
                return doc
        raise DocumentNotFoundError(document_id)

    def _waiver(self, waiver_id: UUID) -> Waiver:
        for waiver in self._waivers:
            if waiver.id == waiver_id:
                return waiver
        raise WaiverNotFoundError(waiver_id)

    def _latest_document(self, document_type: DocumentType) -> ApplicationDocument | None:
        matches = [d for d in self._documents if d.document_type is document_type]
        return matches[-1] if matches else None

    def missing_required_documents(self) -> list[DocumentType]:
        return [t for t in REQUIRED_DOCUMENT_TYPES if self._latest_document(t) is None]

    def unverified_required_documents(self) -> list[DocumentType]:
        unverified = []
        for doc_type in REQUIRED_DOCUMENT_TYPES:
            doc = self._latest_document(doc_type)
            if doc is None or doc.status is not DocumentStatus.VERIFIED:
                unverified.append(doc_type)
        return unverified

    def all_required_documents_verified(self) -> bool:
        return not self.unverified_required_documents()

    # -- documents -----------------------------------------------------------

    def add_document(self, document: ApplicationDocument, now: datetime) -> None:
        """Attach a document; an earlier document of the same type is replaced."""
        self._check("add_document")
        self._documents = [
            d for d in self._documents if d.document_type is not document.document_type
        ]
        self._documents.append(document)
        self._touch(now)

    def verify_document(self, document_id: UUID, verified_by: str, now: datetime) -> None:
        self._check("verify_document")
        doc = self._document(document_id)
        doc.verify(verified_by, now)
        if (
            self._status is ApplicationStatus.PENDING_DOCUMENTS
            and not any(d.status is DocumentStatus.REJECTED for d in self._documents)
            and self.all_required_documents_verified()
        ):
            self._status = self._check("documents_verified")
        self._touch(now)
        self._raise_event(events.DocumentVerified(
            occurred_at=now, **self._base_event(),
            document_id=doc.id, document_type=doc.document_type.value,
            verified_by=doc.verified_by,
        ))

    def reject_document(self, document_id: UUID, rejected_by: str, reason: str, now: datetime) -> None:
        target = self._check("reject_document")
        doc = self._document(document_id)
        doc.reject(rejected_by, reason, now)
        self._status = target
        self._touch(now)
        self._raise_event(events.DocumentRejected(
            occurred_at=now, **self._base_event(),
            document_id=doc.id, document_type=doc.document_type.value,
            rejected_by=doc.verified_by, reason=doc.rejection_reason,
        ))

    # -- review workflow -----------------------------------------------------

    def submit(self, now: datetime) -> None:
        target = self._check("submit")
        missing = self.missing_required_documents()
        if missing:
            raise MissingDocumentsError([t.value for t in missing])
        self._status = target
        self._submitted_at = now
        self._touch(now)
        fd = self._flight_details
        self._raise_event(events.ApplicationSubmitted(
            occurred_at=now, **self._base_event(),
            application_type=self._application_type.value,
            calculated_fee=self._calculated_fee,
            arrival_airport=fd.arrival_airport,
            flight_purpose=fd.purpose.value,
            estimated_flight_date=fd.estimated_flight_date,
            number_of_passengers=fd.number_of_passengers,
            mtow=self._mtow,
            seat_count=self._seat_count,
            aircraft_id=self._aircraft_id,
        ))

    def start_review(self, reviewer: str, now: datetime) -> None:
        target = self._check("start_review")
        reviewer = _require(reviewer, "Reviewer")
        self._status = target
        self._reviewed_by = reviewer
        self._reviewed_at = now
        self._touch(now)
        self._raise_event(events.ApplicationUnderReview(
            occurred_at=now, **self._base_event(), reviewer=reviewer,
        ))

    def request_payment(self, method: PaymentMethod | str, now: datetime) -> ApplicationPayment:
        target = self._check("request_payment")
        unverified = self.unverified_required_documents()
        if unverified:
            raise DocumentsNotVerifiedError([t.value for t in unverified])
        payment = ApplicationPayment.create(self._calculated_fee, method, now)
        self._payment = payment
        self._status = target
        self._touch(now)
        return payment

    def complete_payment(self, transaction_reference: str, receipt_number: str, now: datetime) -> None:
        self._check("complete_payment")
        if self._payment is None:
            raise ApplicationPaymentError("No payment exists for this application")
        self._payment.complete(transaction_reference, receipt_number, now)
        self._touch(now)
        self._raise_event(events.PaymentCompleted(
            occurred_at=now, **self._base_event(),
            payment_id=self._payment.id,
            amount=self._payment.amount,
            transaction_reference=self._payment.transaction_reference,
            receipt_number=self._payment.receipt_number,
        ))

    def fail_payment(self, reason: str, now: datetime) -> None:
        self._check("fail_payment")
        if self._payment is None:
            raise ApplicationPaymentError("No payment exists for this application")
        self._payment.fail(reason)
        self._touch(now)

    def ensure_approvable(self, approved_by: str) -> None:
        """Check every approval precondition without mutating anything."""
        self._check("approve")
        _require(approved_by, "Approved by")
        if self._payment is None or not self._payment.is_completed:
            raise ApplicationPaymentError(
                "Payment must be completed before approval",
                payment_status=self._payment.status.value if self._payment else None,
            )

    def approve(self, approved_by: str, notes: str | None, now: datetime) -> None:
        """
        Mark approved.  Callers go through the permit issuance gate first;
        ``ApplicationService.approve`` is the only production caller.
        """
        self.ensure_approvable(approved_by)
        self._status = self._check("approve")
        self._approved_by = approved_by.strip()
        self._approved_at = now
        self._review_notes = notes
        self._touch(now)
        self._raise_event(events.ApplicationApproved(
            occurred_at=now, **self._base_event(),
            approved_by=self._approved_by, notes=notes,
        ))

    def reject(self, rejected_by: str, reason: str, now: datetime) -> None:
        target = self._check("reject")
        rejected_by = _require(rejected_by, "Rejected by")
        reason = _require(reason, "Rejection reason")
        self._status = target
        self._rejected_by = rejected_by
        self._rejection_reason = reason
        self._touch(now)
        self._raise_event(events.ApplicationRejected(
            occurred_at=now, **self._base_event(), rejected_by=rejected_by, reason=reason,
        ))

    def cancel(self, reason: str | None, now: datetime) -> None:
        target = self._check("cancel")
        if self._payment is not None and self._payment.status in (
            PaymentStatus.PENDING, PaymentStatus.PROCESSING
        ):
            self._payment.cancel()
        self._status = target
        self._cancelled_at = now
        self._cancellation_reason = reason
        self._touch(now)
        self._raise_event(events.ApplicationCancelled(
            occurred_at=now, **self._base_event(), reason=reason,
        ))

    def expire(self, now: datetime) -> None:
        self._status = self._check("expire")
        self._expired_at = now
        self._touch(now)
        self._raise_event(events.ApplicationExpired(occurred_at=now, **self._base_event()))

    # -- fee adjustments -----------------------------------------------------

    def _ensure_fee_adjustable(self, action: str) -> None:
        self._check(action)
        if self._payment is not None:
            raise FeeOverrideError(
                f"Fee cannot change once payment has been requested "
                f"(application {self._application_number})"
            )

    def override_fee(
        self,
        new_amount: Decimal,
        currency: Currency | str,
        overridden_by: str,
        justification: str,
        now: datetime,
    ) -> None:
        self._ensure_fee_adjustable("override_fee")
        overridden_by = _require(overridden_by, "Overridden by")
        justification = _require(justification, "Justification")
        if len(justification) < MIN_FEE_OVERRIDE_JUSTIFICATION:
            raise FeeOverrideError(
                f"Justification must be at least {MIN_FEE_OVERRIDE_JUSTIFICATION} characters"
            )
        try:
            new_fee = Money.of(new_amount, currency)
        except (ValueError, TypeError) as exc:
            raise FeeOverrideError(str(exc)) from exc
        previous = self._calculated_fee
        if self._original_fee is None:
            self._original_fee = previous
        self._calculated_fee = new_fee
        self._fee_overridden_by = overridden_by
        self._fee_override_justification = justification
        self._fee_overridden_at = now
        self._touch(now)
        self._raise_event(events.FeeOverridden(
            occurred_at=now, **self._base_event(),
            previous_fee=previous, new_fee=new_fee,
            overridden_by=overridden_by, justification=justification,
        ))

    def request_waiver(self, waiver_type: WaiverType | str, reason: str, requested_by: str, now: datetime) -> Waiver:
        self._check("request_waiver")
        pending = self.pending_waiver
        if pending is not None:
            raise PendingWaiverExistsError(pending.id)
        waiver = Waiver.create(waiver_type, reason, requested_by, now)
        self._waivers.append(waiver)
        self._touch(now)
        self._raise_event(events.WaiverRequested(
            occurred_at=now, **self._base_event(),
            waiver_id=waiver.id, waiver_type=waiver.waiver_type.value,
            requested_by=waiver.requested_by,
        ))
        return waiver

    def approve_waiver(self, waiver_id: UUID, approved_by: str, percentage: Decimal, now: datetime) -> Money:
        """Approve a pending waiver; returns the recalculated fee."""
        self._ensure_fee_adjustable("decide_waiver")
        waiver = self._waiver(waiver_id)
        original = self._calculated_fee
        waived = waiver.approve(approved_by, percentage, original, now)
        if self._original_fee is None:
            self._original_fee = original
        self._calculated_fee = original - waived
        self._touch(now)
        self._raise_event(events.WaiverApproved(
            occurred_at=now, **self._base_event(),
            waiver_id=waiver.id, approved_by=waiver.approved_by,
            waiver_percentage=waiver.waiver_percentage,
            waived_amount=waived, new_fee=self._calculated_fee,
        ))
        return self._calculated_fee

    def reject_waiver(self, waiver_id: UUID, rejected_by: str, reason: str, now: datetime) -> None:
        self._check("decide_waiver")
        waiver = self._waiver(waiver_id)
        waiver.reject(rejected_by, reason, now)
        self._touch(now)
        self._raise_event(events.WaiverRejected(
            occurred_at=now, **self._base_event(),
            waiver_id=waiver.id, rejected_by=waiver.rejected_by,
            reason=waiver.rejection_reason,
        ))


# -----------------------------------------------------------------------------
# Fee configuration record
# -----------------------------------------------------------------------------


class FeeConfiguration(Entity):
    """
    Versioned permit-fee rates.  Exactly one configuration is active at a
    time; ``effective_from`` / ``effective_to`` optionally bound it.
    """

    @classmethod
    def create(
        cls,
        *,
        base_fee: Decimal,
        per_seat_fee: Decimal,
        per_kg_fee: Decimal,
        one_time_multiplier: Decimal = Decimal("1.0"),
        blanket_multiplier: Decimal = Decimal("2.5"),
        emergency_multiplier: Decimal = Decimal("0.5"),
        currency: Currency | str = Currency.USD,
        effective_from: date | None = None,
        effective_to: date | None = None,
        modified_by: str,
        notes: str | None = None,
        now: datetime,
    ) -> FeeConfiguration:
        fees = [to_decimal(v) for v in (base_fee, per_seat_fee, per_kg_fee)]
        multipliers = [to_decimal(v) for v in (one_time_multiplier, blanket_multiplier, emergency_multiplier)]
        if any(v < 0 for v in fees):
            raise FeeConfigurationError("Fee rates cannot be negative")
        if any(m <= 0 for m in multipliers):
            raise FeeConfigurationError("Multipliers must be positive")
        if effective_from and effective_to and effective_to < effective_from:
            raise FeeConfigurationError("effective_to precedes effective_from")
        return cls.restore(
            id=uuid4(),
            base_fee=fees[0],
            per_seat_fee=fees[1],
            per_kg_fee=fees[2],
            one_time_multiplier=multipliers[0],
            blanket_multiplier=multipliers[1],
            emergency_multiplier=multipliers[2],
            currency=Currency.parse(currency),
            is_active=False,
            effective_from=effective_from,
            effective_to=effective_to,
            modified_by=_require(modified_by, "Modified by"),
            notes=notes,
            updated_at=now,
        )

    base_fee = property(lambda self: self._base_fee)
    per_seat_fee = property(lambda self: self._per_seat_fee)
    per_kg_fee = property(lambda self: self._per_kg_fee)
    one_time_multiplier = property(lambda self: self._one_time_multiplier)
    blanket_multiplier = property(lambda self: self._blanket_multiplier)
    emergency_multiplier = property(lambda self: self._emergency_multiplier)
    currency = property(lambda self: self._currency)
    is_active = property(lambda self: self._is_active)
    effective_from = property(lambda self: self._effective_from)
    effective_to = property(lambda self: self._effective_to)
    modified_by = property(lambda self: self._modified_by)
    notes = property(lambda self: self._notes)
    updated_at = property(lambda self: self._updated_at)

    def activate(self, by: str, now: datetime) -> None:
        self._is_active = True
        self._modified_by = _require(by, "Modified by")
        self._updated_at = now

    def deactivate(self, by: str, now: datetime) -> None:
        self._is_active = False
        self._modified_by = _require(by, "Modified by")
        self._updated_at = now

    def get_multiplier(self, application_type: ApplicationType) -> Decimal:
        return {
            ApplicationType.ONE_TIME: self._one_time_multiplier,
            ApplicationType.BLANKET: self._blanket_multiplier,
            ApplicationType.EMERGENCY: self._emergency_multiplier,
        }[ApplicationType(application_type)]

    def is_effective_on(self, on: date) -> bool:
        if self._effective_from is not None and on < self._effective_from:
            return False
        if self._effective_to is not None and on > self._effective_to:
            return False
        return True
