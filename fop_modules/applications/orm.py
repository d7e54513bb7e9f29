"""
Permit Application ORM Models (``fop_modules.applications.orm``).

Responsibility
--------------
SQLAlchemy persistence for the application aggregate, its owned documents,
payment and waivers, and the versioned fee configuration records.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``fop_kernel.db.base`` and
sibling ``models.py``.  MUST NOT be imported by ``fop_kernel`` (the ORM
registry is the one exception, and it imports lazily).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fop_kernel.db.base import Base, TrackedBase, ensure_utc, sync_children
from fop_kernel.db.types import CurrencyCode, DocumentNumber, LongText, MoneyAmount, Rate, ShortCode
from fop_kernel.domain.values import Money, Weight


def _money(amount: Decimal | None, currency: str | None) -> Money | None:
    if amount is None:
        return None
    return Money.of(amount, currency)


# ---------------------------------------------------------------------------
# 1. ApplicationModel
# ---------------------------------------------------------------------------


class ApplicationModel(TrackedBase):
    """
    ORM model for permit applications.

    Guarantees:
        - application_number is unique.
        - Fee stored as amount + currency; MTOW as value + unit.
        - version is the optimistic-lock counter.
    """

    __tablename__ = "fop_applications"

    __table_args__ = (
        UniqueConstraint("application_number", name="uq_fop_applications_number"),
        Index("idx_fop_applications_operator_id", "operator_id"),
        Index("idx_fop_applications_status", "status"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    application_number: Mapped[DocumentNumber] = mapped_column(nullable=False)
    application_type: Mapped[ShortCode] = mapped_column(nullable=False)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    operator_id: Mapped[UUID] = mapped_column(nullable=False)
    aircraft_id: Mapped[UUID] = mapped_column(nullable=False)
    seat_count: Mapped[int] = mapped_column(nullable=False)
    mtow_value: Mapped[Decimal] = mapped_column(nullable=False)
    mtow_unit: Mapped[str] = mapped_column(String(3), nullable=False)

    flight_purpose: Mapped[ShortCode] = mapped_column(nullable=False)
    flight_purpose_description: Mapped[LongText | None] = mapped_column(nullable=True)
    arrival_airport: Mapped[str] = mapped_column(String(4), nullable=False)
    departure_airport: Mapped[str] = mapped_column(String(4), nullable=False)
    estimated_flight_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_passengers: Mapped[int] = mapped_column(nullable=False, default=0)
    flight_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    requested_start: Mapped[date] = mapped_column(Date, nullable=False)
    requested_end: Mapped[date] = mapped_column(Date, nullable=False)

    calculated_fee: Mapped[MoneyAmount] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    original_fee: Mapped[MoneyAmount | None] = mapped_column(nullable=True)
    original_fee_currency: Mapped[CurrencyCode | None] = mapped_column(nullable=True)
    fee_overridden_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    fee_override_justification: Mapped[LongText | None] = mapped_column(nullable=True)
    fee_overridden_at: Mapped[datetime | None] = mapped_column(nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    review_notes: Mapped[LongText | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejection_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(nullable=True)

    documents: Mapped[list[ApplicationDocumentModel]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ApplicationDocumentModel.position",
    )
    payments: Mapped[list[ApplicationPaymentModel]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    waivers: Mapped[list[WaiverModel]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WaiverModel.position",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        """Rehydrate the ``Application`` aggregate."""
        from fop_modules.applications.models import (
            Application,
            ApplicationStatus,
            ApplicationType,
            FlightDetails,
        )

        flight = FlightDetails(
            purpose=self.flight_purpose,
            purpose_description=self.flight_purpose_description,
            arrival_airport=self.arrival_airport,
            departure_airport=self.departure_airport,
            estimated_flight_date=self.estimated_flight_date,
            number_of_passengers=self.number_of_passengers,
            flight_number=self.flight_number,
        )
        return Application.restore(
            id=self.id,
            tenant_id=self.tenant_id,
            application_number=self.application_number,
            application_type=ApplicationType(self.application_type),
            status=ApplicationStatus(self.status),
            operator_id=self.operator_id,
            aircraft_id=self.aircraft_id,
            flight_details=flight,
            requested_start=self.requested_start,
            requested_end=self.requested_end,
            seat_count=self.seat_count,
            mtow=Weight(self.mtow_value, self.mtow_unit),
            calculated_fee=Money.of(self.calculated_fee, self.currency),
            original_fee=_money(self.original_fee, self.original_fee_currency),
            fee_overridden_by=self.fee_overridden_by,
            fee_override_justification=self.fee_override_justification,
            fee_overridden_at=ensure_utc(self.fee_overridden_at),
            documents=[d.to_dto() for d in self.documents],
            payment=self.payments[0].to_dto() if self.payments else None,
            waivers=[w.to_dto() for w in self.waivers],
            submitted_at=ensure_utc(self.submitted_at),
            reviewed_by=self.reviewed_by,
            reviewed_at=ensure_utc(self.reviewed_at),
            review_notes=self.review_notes,
            approved_by=self.approved_by,
            approved_at=ensure_utc(self.approved_at),
            rejected_by=self.rejected_by,
            rejection_reason=self.rejection_reason,
            cancelled_at=ensure_utc(self.cancelled_at),
            cancellation_reason=self.cancellation_reason,
            expired_at=ensure_utc(self.expired_at),
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> ApplicationModel:
        fd = dto.flight_details
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            application_number=dto.application_number,
            application_type=dto.application_type.value,
            operator_id=dto.operator_id,
            aircraft_id=dto.aircraft_id,
            flight_purpose=fd.purpose.value,
            flight_purpose_description=fd.purpose_description,
            arrival_airport=fd.arrival_airport,
            departure_airport=fd.departure_airport,
            estimated_flight_date=fd.estimated_flight_date,
            number_of_passengers=fd.number_of_passengers,
            flight_number=fd.flight_number,
            requested_start=dto.requested_start,
            requested_end=dto.requested_end,
            created_at=dto.created_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        """Copy mutable aggregate state onto this row and its children."""
        self.status = dto.status.value
        self.seat_count = dto.seat_count
        self.mtow_value = dto.mtow.value
        self.mtow_unit = dto.mtow.unit.value
        self.calculated_fee = dto.calculated_fee.amount
        self.currency = dto.calculated_fee.currency.value
        self.original_fee = dto.original_fee.amount if dto.original_fee else None
        self.original_fee_currency = (
            dto.original_fee.currency.value if dto.original_fee else None
        )
        self.fee_overridden_by = dto.fee_overridden_by
        self.fee_override_justification = dto.fee_override_justification
        self.fee_overridden_at = dto.fee_overridden_at
        self.submitted_at = dto.submitted_at
        self.reviewed_by = dto.reviewed_by
        self.reviewed_at = dto.reviewed_at
        self.review_notes = dto.review_notes
        self.approved_by = dto.approved_by
        self.approved_at = dto.approved_at
        self.rejected_by = dto.rejected_by
        self.rejection_reason = dto.rejection_reason
        self.cancelled_at = dto.cancelled_at
        self.cancellation_reason = dto.cancellation_reason
        self.expired_at = dto.expired_at
        self.updated_at = dto.updated_at

        sync_children(
            self.documents, dto.documents,
            build=ApplicationDocumentModel.from_dto,
            update=ApplicationDocumentModel.update_from,
        )
        sync_children(
            self.payments, [dto.payment] if dto.payment is not None else [],
            build=ApplicationPaymentModel.from_dto,
            update=ApplicationPaymentModel.update_from,
        )
        sync_children(
            self.waivers, dto.waivers,
            build=WaiverModel.from_dto,
            update=WaiverModel.update_from,
        )

    def __repr__(self) -> str:
        return f"<ApplicationModel {self.application_number} status={self.status}>"


# ---------------------------------------------------------------------------
# 2. Owned children
# ---------------------------------------------------------------------------


class ApplicationDocumentModel(Base):
    __tablename__ = "fop_application_documents"

    __table_args__ = (
        Index("idx_fop_application_documents_application_id", "application_id"),
    )

    application_id: Mapped[UUID] = mapped_column(
        ForeignKey("fop_applications.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    document_type: Mapped[ShortCode] = mapped_column(nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_url: Mapped[LongText] = mapped_column(nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(100), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    verified_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[LongText | None] = mapped_column(nullable=True)

    application: Mapped[ApplicationModel] = relationship(back_populates="documents")

    def to_dto(self):
        from fop_modules.applications.models import (
            ApplicationDocument,
            DocumentStatus,
            DocumentType,
        )

        return ApplicationDocument.restore(
            id=self.id,
            document_type=DocumentType(self.document_type),
            file_name=self.file_name,
            file_size=self.file_size,
            mime_type=self.mime_type,
            storage_url=self.storage_url,
            uploaded_by=self.uploaded_by,
            uploaded_at=ensure_utc(self.uploaded_at),
            expiry_date=self.expiry_date,
            status=DocumentStatus(self.status),
            verified_by=self.verified_by,
            verified_at=ensure_utc(self.verified_at),
            rejection_reason=self.rejection_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> ApplicationDocumentModel:
        model = cls(
            id=dto.id,
            document_type=dto.document_type.value,
            file_name=dto.file_name,
            file_size=dto.file_size,
            mime_type=dto.mime_type,
            storage_url=dto.storage_url,
            uploaded_by=dto.uploaded_by,
            uploaded_at=dto.uploaded_at,
            expiry_date=dto.expiry_date,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.verified_by = dto.verified_by
        self.verified_at = dto.verified_at
        self.rejection_reason = dto.rejection_reason


class ApplicationPaymentModel(Base):
    __tablename__ = "fop_application_payments"

    __table_args__ = (
        Index("idx_fop_application_payments_application_id", "application_id"),
    )

    application_id: Mapped[UUID] = mapped_column(
        ForeignKey("fop_applications.id"), nullable=False
    )
    amount: Mapped[MoneyAmount] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    method: Mapped[ShortCode] = mapped_column(nullable=False)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    transaction_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failure_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    application: Mapped[ApplicationModel] = relationship(back_populates="payments")

    def to_dto(self):
        from fop_modules.applications.models import (
            ApplicationPayment,
            PaymentMethod,
            PaymentStatus,
        )

        return ApplicationPayment.restore(
            id=self.id,
            amount=Money.of(self.amount, self.currency),
            method=PaymentMethod(self.method),
            status=PaymentStatus(self.status),
            transaction_reference=self.transaction_reference,
            receipt_number=self.receipt_number,
            completed_at=ensure_utc(self.completed_at),
            failure_reason=self.failure_reason,
            created_at=ensure_utc(self.created_at),
        )

    @classmethod
    def from_dto(cls, dto) -> ApplicationPaymentModel:
        model = cls(
            id=dto.id,
            amount=dto.amount.amount,
            currency=dto.amount.currency.value,
            method=dto.method.value,
            created_at=dto.created_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.transaction_reference = dto.transaction_reference
        self.receipt_number = dto.receipt_number
        self.completed_at = dto.completed_at
        self.failure_reason = dto.failure_reason


class WaiverModel(Base):
    __tablename__ = "fop_waivers"

    __table_args__ = (
        Index("idx_fop_waivers_application_id", "application_id"),
        Index("idx_fop_waivers_status", "status"),
    )

    application_id: Mapped[UUID] = mapped_column(
        ForeignKey("fop_applications.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    waiver_type: Mapped[ShortCode] = mapped_column(nullable=False)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    reason: Mapped[LongText] = mapped_column(nullable=False)
    requested_by: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    original_fee: Mapped[MoneyAmount | None] = mapped_column(nullable=True)
    waived_amount: Mapped[MoneyAmount | None] = mapped_column(nullable=True)
    currency: Mapped[CurrencyCode | None] = mapped_column(nullable=True)
    waiver_percentage: Mapped[Rate | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[LongText | None] = mapped_column(nullable=True)

    application: Mapped[ApplicationModel] = relationship(back_populates="waivers")

    def to_dto(self):
        from fop_modules.applications.models import Waiver, WaiverStatus, WaiverType

        return Waiver.restore(
            id=self.id,
            waiver_type=WaiverType(self.waiver_type),
            status=WaiverStatus(self.status),
            reason=self.reason,
            requested_by=self.requested_by,
            requested_at=ensure_utc(self.requested_at),
            original_fee=_money(self.original_fee, self.currency),
            waived_amount=_money(self.waived_amount, self.currency),
            waiver_percentage=self.waiver_percentage,
            approved_by=self.approved_by,
            approved_at=ensure_utc(self.approved_at),
            rejected_by=self.rejected_by,
            rejected_at=ensure_utc(self.rejected_at),
            rejection_reason=self.rejection_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> WaiverModel:
        model = cls(
            id=dto.id,
            waiver_type=dto.waiver_type.value,
            reason=dto.reason,
            requested_by=dto.requested_by,
            requested_at=dto.requested_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.original_fee = dto.original_fee.amount if dto.original_fee else None
        self.waived_amount = dto.waived_amount.amount if dto.waived_amount else None
        self.currency = dto.original_fee.currency.value if dto.original_fee else None
        self.waiver_percentage = dto.waiver_percentage
        self.approved_by = dto.approved_by
        self.approved_at = dto.approved_at
        self.rejected_by = dto.rejected_by
        self.rejected_at = dto.rejected_at
        self.rejection_reason = dto.rejection_reason


# ---------------------------------------------------------------------------
# 3. FeeConfigurationModel
# ---------------------------------------------------------------------------


class FeeConfigurationModel(TrackedBase):
    """
    ORM model for versioned permit-fee rates.

    Guarantees:
        - Rates stored as Numeric; multipliers as Rate (Numeric(18, 6)).
        - is_active indexed; the service keeps at most one active row.
    """

    __tablename__ = "fop_fee_configurations"

    __table_args__ = (
        Index("idx_fop_fee_configurations_is_active", "is_active"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    base_fee: Mapped[MoneyAmount] = mapped_column(nullable=False)
    per_seat_fee: Mapped[MoneyAmount] = mapped_column(nullable=False)
    per_kg_fee: Mapped[Rate] = mapped_column(nullable=False)
    one_time_multiplier: Mapped[Rate] = mapped_column(nullable=False)
    blanket_multiplier: Mapped[Rate] = mapped_column(nullable=False)
    emergency_multiplier: Mapped[Rate] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    modified_by: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[LongText | None] = mapped_column(nullable=True)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from fop_kernel.domain.values import Currency
        from fop_modules.applications.models import FeeConfiguration

        return FeeConfiguration.restore(
            id=self.id,
            base_fee=self.base_fee,
            per_seat_fee=self.per_seat_fee,
            per_kg_fee=self.per_kg_fee,
            one_time_multiplier=self.one_time_multiplier,
            blanket_multiplier=self.blanket_multiplier,
            emergency_multiplier=self.emergency_multiplier,
            currency=Currency.parse(self.currency),
            is_active=self.is_active,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            modified_by=self.modified_by,
            notes=self.notes,
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> FeeConfigurationModel:
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            base_fee=dto.base_fee,
            per_seat_fee=dto.per_seat_fee,
            per_kg_fee=dto.per_kg_fee,
            one_time_multiplier=dto.one_time_multiplier,
            blanket_multiplier=dto.blanket_multiplier,
            emergency_multiplier=dto.emergency_multiplier,
            currency=dto.currency.value,
            effective_from=dto.effective_from,
            effective_to=dto.effective_to,
            notes=dto.notes,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.is_active = dto.is_active
        self.modified_by = dto.modified_by
        self.updated_at = dto.updated_at
