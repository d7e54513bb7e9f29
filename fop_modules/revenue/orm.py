"""
Revenue Ledger ORM Models (``fop_modules.revenue.orm``).

Responsibility
--------------
SQLAlchemy persistence for invoices (with line items and payments),
operator account balances and fee rate records.

Totals are not stored on the invoice row; the aggregate recomputes them
from the child rows.  ``status`` is stored so jobs can select by it.
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


# ---------------------------------------------------------------------------
# 1. InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(TrackedBase):
    """
    ORM model for revenue invoices.

    Guarantees:
        - invoice_number is unique.
        - Line items and payments are child tables, loaded with selectin.
        - version is the optimistic-lock counter.
    """

    __tablename__ = "fop_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_fop_invoices_number"),
        Index("idx_fop_invoices_operator_id", "operator_id"),
        Index("idx_fop_invoices_status", "status"),
        Index("idx_fop_invoices_due_date", "due_date"),
        Index("idx_fop_invoices_application_id", "application_id"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    invoice_number: Mapped[DocumentNumber] = mapped_column(nullable=False)
    operator_id: Mapped[UUID] = mapped_column(nullable=False)
    application_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    arrival_airport: Mapped[str] = mapped_column(String(4), nullable=False)
    departure_airport: Mapped[str | None] = mapped_column(String(4), nullable=True)
    operation_type: Mapped[ShortCode] = mapped_column(nullable=False)
    flight_date: Mapped[date] = mapped_column(Date, nullable=False)
    aircraft_registration: Mapped[str | None] = mapped_column(String(20), nullable=True)
    mtow_value: Mapped[Decimal] = mapped_column(nullable=False)
    mtow_unit: Mapped[str] = mapped_column(String(3), nullable=False)
    seat_count: Mapped[int] = mapped_column(nullable=False)
    passenger_count: Mapped[int | None] = mapped_column(nullable=True)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    payment_terms_days: Mapped[int] = mapped_column(nullable=False, default=30)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    marked_overdue_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cancellation_reason: Mapped[LongText | None] = mapped_column(nullable=True)
    notes: Mapped[LongText | None] = mapped_column(nullable=True)

    line_items: Mapped[list[LineItemModel]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="LineItemModel.display_order",
    )
    payments: Mapped[list[InvoicePaymentModel]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoicePaymentModel.recorded_at",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from fop_kernel.domain.values import Currency
        from fop_modules.revenue.models import (
            BviAirport,
            Invoice,
            InvoiceStatus,
            OperationType,
        )

        return Invoice.restore(
            id=self.id,
            tenant_id=self.tenant_id,
            invoice_number=self.invoice_number,
            operator_id=self.operator_id,
            application_id=self.application_id,
            status=InvoiceStatus(self.status),
            arrival_airport=BviAirport(self.arrival_airport),
            departure_airport=self.departure_airport,
            operation_type=OperationType(self.operation_type),
            flight_date=self.flight_date,
            aircraft_registration=self.aircraft_registration,
            mtow=Weight(self.mtow_value, self.mtow_unit),
            seat_count=self.seat_count,
            passenger_count=self.passenger_count,
            currency=Currency.parse(self.currency),
            line_items=[li.to_dto() for li in self.line_items],
            payments=[p.to_dto() for p in self.payments],
            payment_terms_days=self.payment_terms_days,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            finalized_at=ensure_utc(self.finalized_at),
            finalized_by=self.finalized_by,
            marked_overdue_at=ensure_utc(self.marked_overdue_at),
            cancelled_at=ensure_utc(self.cancelled_at),
            cancelled_by=self.cancelled_by,
            cancellation_reason=self.cancellation_reason,
            notes=self.notes,
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> InvoiceModel:
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            invoice_number=dto.invoice_number,
            operator_id=dto.operator_id,
            application_id=dto.application_id,
            arrival_airport=dto.arrival_airport.value,
            departure_airport=dto.departure_airport,
            operation_type=dto.operation_type.value,
            flight_date=dto.flight_date,
            aircraft_registration=dto.aircraft_registration,
            mtow_value=dto.mtow.value,
            mtow_unit=dto.mtow.unit.value,
            seat_count=dto.seat_count,
            currency=dto.currency.value,
            payment_terms_days=dto.payment_terms_days,
            created_at=dto.created_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.passenger_count = dto.passenger_count
        self.invoice_date = dto.invoice_date
        self.due_date = dto.due_date
        self.finalized_at = dto.finalized_at
        self.finalized_by = dto.finalized_by
        self.marked_overdue_at = dto.marked_overdue_at
        self.cancelled_at = dto.cancelled_at
        self.cancelled_by = dto.cancelled_by
        self.cancellation_reason = dto.cancellation_reason
        self.notes = dto.notes
        self.updated_at = dto.updated_at
        sync_children(
            self.line_items, dto.line_items,
            build=LineItemModel.from_dto,
            update=LineItemModel.update_from,
        )
        sync_children(
            self.payments, dto.payments,
            build=InvoicePaymentModel.from_dto,
            update=InvoicePaymentModel.update_from,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} status={self.status}>"


# ---------------------------------------------------------------------------
# 2. Invoice children
# ---------------------------------------------------------------------------


class LineItemModel(Base):
    """Line items are immutable once written; update_from is a no-op."""

    __tablename__ = "fop_invoice_line_items"

    __table_args__ = (
        Index("idx_fop_invoice_line_items_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("fop_invoices.id"), nullable=False)
    category: Mapped[ShortCode] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    unit_rate: Mapped[MoneyAmount] = mapped_column(nullable=False)
    amount: Mapped[MoneyAmount] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    is_interest_charge: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(nullable=False)
    fee_rate_id: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="line_items")

    def to_dto(self):
        from fop_modules.revenue.models import FeeCategory, LineItem

        return LineItem.restore(
            id=self.id,
            category=FeeCategory(self.category),
            description=self.description,
            quantity=self.quantity,
            unit=self.unit,
            unit_rate=Money.of(self.unit_rate, self.currency),
            amount=Money.of(self.amount, self.currency),
            is_interest_charge=self.is_interest_charge,
            display_order=self.display_order,
            fee_rate_id=self.fee_rate_id,
            created_at=ensure_utc(self.created_at),
        )

    @classmethod
    def from_dto(cls, dto) -> LineItemModel:
        return cls(
            id=dto.id,
            category=dto.category.value,
            description=dto.description,
            quantity=dto.quantity,
            unit=dto.unit,
            unit_rate=dto.unit_rate.amount,
            amount=dto.amount.amount,
            currency=dto.amount.currency.value,
            is_interest_charge=dto.is_interest_charge,
            display_order=dto.display_order,
            fee_rate_id=dto.fee_rate_id,
            created_at=dto.created_at,
        )

    def update_from(self, dto) -> None:
        pass


class InvoicePaymentModel(Base):
    __tablename__ = "fop_invoice_payments"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_fop_invoice_payments_receipt"),
        Index("idx_fop_invoice_payments_invoice_id", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("fop_invoices.id"), nullable=False)
    amount: Mapped[MoneyAmount] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    method: Mapped[ShortCode] = mapped_column(nullable=False)
    status: Mapped[ShortCode] = mapped_column(nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    receipt_number: Mapped[DocumentNumber] = mapped_column(nullable=False)
    recorded_by: Mapped[str] = mapped_column(String(100), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)
    notes: Mapped[LongText | None] = mapped_column(nullable=True)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="payments")

    def to_dto(self):
        from fop_modules.revenue.models import (
            InvoicePayment,
            LedgerPaymentMethod,
            LedgerPaymentStatus,
        )

        return InvoicePayment.restore(
            id=self.id,
            amount=Money.of(self.amount, self.currency),
            method=LedgerPaymentMethod(self.method),
            status=LedgerPaymentStatus(self.status),
            reference=self.reference,
            payment_date=self.payment_date,
            receipt_number=self.receipt_number,
            recorded_by=self.recorded_by,
            recorded_at=ensure_utc(self.recorded_at),
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto) -> InvoicePaymentModel:
        model = cls(
            id=dto.id,
            amount=dto.amount.amount,
            currency=dto.amount.currency.value,
            method=dto.method.value,
            reference=dto.reference,
            payment_date=dto.payment_date,
            receipt_number=dto.receipt_number,
            recorded_by=dto.recorded_by,
            recorded_at=dto.recorded_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.status = dto.status.value
        self.notes = dto.notes


# ---------------------------------------------------------------------------
# 3. OperatorAccountBalanceModel
# ---------------------------------------------------------------------------


class OperatorAccountBalanceModel(TrackedBase):
    """
    One row per operator per tenant.

    Guarantees:
        - (tenant_id, operator_id) is unique.
        - version guards concurrent read-modify-write from jobs and
          interactive approvals.
    """

    __tablename__ = "fop_operator_account_balances"

    __table_args__ = (
        UniqueConstraint("tenant_id", "operator_id", name="uq_fop_balances_operator"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    operator_id: Mapped[UUID] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    total_invoiced: Mapped[MoneyAmount] = mapped_column(nullable=False)
    total_paid: Mapped[MoneyAmount] = mapped_column(nullable=False)
    total_interest: Mapped[MoneyAmount] = mapped_column(nullable=False)
    current_balance: Mapped[MoneyAmount] = mapped_column(nullable=False)
    total_overdue: Mapped[MoneyAmount] = mapped_column(nullable=False)
    invoice_count: Mapped[int] = mapped_column(nullable=False, default=0)
    paid_invoice_count: Mapped[int] = mapped_column(nullable=False, default=0)
    overdue_invoice_count: Mapped[int] = mapped_column(nullable=False, default=0)
    last_invoice_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_payment_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_overdue_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from fop_kernel.domain.values import Currency
        from fop_modules.revenue.models import OperatorAccountBalance

        def money(amount: Decimal) -> Money:
            return Money.of(amount, self.currency)

        return OperatorAccountBalance.restore(
            id=self.id,
            tenant_id=self.tenant_id,
            operator_id=self.operator_id,
            currency=Currency.parse(self.currency),
            total_invoiced=money(self.total_invoiced),
            total_paid=money(self.total_paid),
            total_interest=money(self.total_interest),
            current_balance=money(self.current_balance),
            total_overdue=money(self.total_overdue),
            invoice_count=self.invoice_count,
            paid_invoice_count=self.paid_invoice_count,
            overdue_invoice_count=self.overdue_invoice_count,
            last_invoice_at=ensure_utc(self.last_invoice_at),
            last_payment_at=ensure_utc(self.last_payment_at),
            last_overdue_at=ensure_utc(self.last_overdue_at),
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> OperatorAccountBalanceModel:
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            operator_id=dto.operator_id,
            currency=dto.currency.value,
            created_at=dto.created_at,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.total_invoiced = dto.total_invoiced.amount
        self.total_paid = dto.total_paid.amount
        self.total_interest = dto.total_interest.amount
        self.current_balance = dto.current_balance.amount
        self.total_overdue = dto.total_overdue.amount
        self.invoice_count = dto.invoice_count
        self.paid_invoice_count = dto.paid_invoice_count
        self.overdue_invoice_count = dto.overdue_invoice_count
        self.last_invoice_at = dto.last_invoice_at
        self.last_payment_at = dto.last_payment_at
        self.last_overdue_at = dto.last_overdue_at
        self.updated_at = dto.updated_at


# ---------------------------------------------------------------------------
# 4. FeeRateModel
# ---------------------------------------------------------------------------


class FeeRateModel(TrackedBase):
    __tablename__ = "fop_fee_rates"

    __table_args__ = (
        Index("idx_fop_fee_rates_category", "category"),
        Index("idx_fop_fee_rates_is_active", "is_active"),
    )

    version: Mapped[int] = mapped_column(nullable=False, default=1)

    category: Mapped[ShortCode] = mapped_column(nullable=False)
    operation_type: Mapped[ShortCode | None] = mapped_column(nullable=True)
    airport: Mapped[str | None] = mapped_column(String(4), nullable=True)
    mtow_tier: Mapped[str | None] = mapped_column(String(10), nullable=True)
    rate: Mapped[Rate] = mapped_column(nullable=False)
    currency: Mapped[CurrencyCode] = mapped_column(nullable=False)
    is_per_unit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unit_description: Mapped[str | None] = mapped_column(String(100), nullable=True)
    minimum_fee: Mapped[MoneyAmount | None] = mapped_column(nullable=True)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[LongText | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from fop_kernel.domain.values import Currency, MtowTier
        from fop_modules.revenue.models import BviAirport, FeeCategory, FeeRate, OperationType

        return FeeRate.restore(
            id=self.id,
            category=FeeCategory(self.category),
            operation_type=OperationType(self.operation_type) if self.operation_type else None,
            airport=BviAirport(self.airport) if self.airport else None,
            mtow_tier=MtowTier(self.mtow_tier) if self.mtow_tier else None,
            rate=self.rate,
            currency=Currency.parse(self.currency),
            is_per_unit=self.is_per_unit,
            unit_description=self.unit_description,
            minimum_fee=self.minimum_fee,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            description=self.description,
            is_active=self.is_active,
            updated_at=ensure_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: str) -> FeeRateModel:
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            category=dto.category.value,
            operation_type=dto.operation_type.value if dto.operation_type else None,
            airport=dto.airport.value if dto.airport else None,
            mtow_tier=dto.mtow_tier.value if dto.mtow_tier else None,
            rate=dto.rate,
            currency=dto.currency.value,
            is_per_unit=dto.is_per_unit,
            unit_description=dto.unit_description,
            minimum_fee=dto.minimum_fee,
            effective_from=dto.effective_from,
            description=dto.description,
        )
        model.update_from(dto)
        return model

    def update_from(self, dto) -> None:
        self.is_active = dto.is_active
        self.effective_to = dto.effective_to
        self.updated_at = dto.updated_at
