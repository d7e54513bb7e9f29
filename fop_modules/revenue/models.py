"""
Revenue Ledger Domain Models (``fop_modules.revenue.models``).

Responsibility
--------------
The per-flight invoice aggregate with its line items and payments, the
per-operator ``OperatorAccountBalance`` and its eligibility decision, and
``FeeRate`` records that override the default revenue fee schedule.

Architecture position
---------------------
**Modules layer** -- pure domain.  Zero I/O.

Invariants enforced
-------------------
* ``subtotal``, ``total_interest``, ``total_amount``, ``amount_paid`` and
  ``balance_due`` are computed from line items and payments; they are
  never stored separately on the aggregate.
* ``balance_due = total_amount - amount_paid >= 0`` at every point.
* ``status`` is re-derived after every mutation from finalization,
  cancellation, amounts and the overdue marker.
* Account-balance totals never go negative; clearing more overdue than is
  recorded raises ``NegativeOverdueError``.

Failure modes
-------------
* ``InvalidInvoiceStateError`` for actions the current status rejects.
* ``InvoiceFinalizeError``, ``PaymentExceedsBalanceError``,
  ``InterestNotAllowedError`` and ``LineItemNotFoundError`` for the specific
  ledger rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from fop_config.schema import EligibilitySettings
from fop_kernel.domain.events import AggregateRoot, Entity
from fop_kernel.domain.values import Currency, Money, MtowTier, Weight, to_decimal
from fop_kernel.exceptions import (
    AccountBalanceError,
    CurrencyMismatchError,
    FeeRateError,
    InterestNotAllowedError,
    InvalidInvoiceStateError,
    InvoiceError,
    InvoiceFinalizeError,
    LineItemNotFoundError,
    NegativeOverdueError,
    PaymentExceedsBalanceError,
)
from fop_modules._numbering import generate_number
from fop_modules.revenue import events
from fop_modules.revenue.workflows import INVOICE_WORKFLOW


class FeeCategory(str, Enum):
    LANDING = "LANDING"
    NAVIGATION = "NAVIGATION"
    PARKING = "PARKING"
    AIRPORT_DEVELOPMENT = "AIRPORT_DEVELOPMENT"
    SECURITY = "SECURITY"
    HOLD_BAGGAGE_SCREENING = "HOLD_BAGGAGE_SCREENING"
    CAT_VI_FIRE_UPGRADE = "CAT_VI_FIRE_UPGRADE"
    FLIGHT_PLAN_FILING = "FLIGHT_PLAN_FILING"
    FUEL_FLOW = "FUEL_FLOW"
    LIGHTING = "LIGHTING"
    EXTENDED_OPERATIONS = "EXTENDED_OPERATIONS"
    LATE_PAYMENT_INTEREST = "LATE_PAYMENT_INTEREST"  # reserved for interest lines


class OperationType(str, Enum):
    LOCAL_SCHEDULED = "LOCAL_SCHEDULED"
    INTERISLAND = "INTERISLAND"
    GENERAL_AVIATION = "GENERAL_AVIATION"
    CHARTER = "CHARTER"
    EMERGENCY = "EMERGENCY"
    MILITARY = "MILITARY"
    GOVERNMENT = "GOVERNMENT"


class BviAirport(str, Enum):
    TUPJ = "TUPJ"  # Terrance B. Lettsome, Beef Island
    TUPW = "TUPW"  # Virgin Gorda
    TUPY = "TUPY"  # Auguste George, Anegada

    @classmethod
    def lookup(cls, code: str | None) -> BviAirport | None:
        try:
            return cls((code or "").strip().upper())
        except ValueError:
            return None


class InvoiceStatus(str, Enum):
    """Must align with ``workflows.INVOICE_WORKFLOW.states``."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class LedgerPaymentMethod(str, Enum):
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    WIRE_TRANSFER = "WIRE_TRANSFER"
    CASH = "CASH"
    CHECK = "CHECK"


class LedgerPaymentStatus(str, Enum):
    COMPLETED = "COMPLETED"
    REFUNDED = "REFUNDED"


# -----------------------------------------------------------------------------
# Invoice children
# -----------------------------------------------------------------------------


class LineItem(Entity):
    """One charge on an invoice; ``amount = quantity * unit_rate``."""

    @classmethod
    def create(
        cls,
        *,
        category: FeeCategory,
        description: str,
        quantity: Decimal,
        unit: str | None,
        unit_rate: Money,
        display_order: int,
        created_at: datetime,
        is_interest_charge: bool = False,
        fee_rate_id: UUID | None = None,
    ) -> LineItem:
        if not (description or "").strip():
            raise InvoiceError("Line item description is required")
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise InvoiceError(f"Line item quantity must be positive: {quantity}")
        return cls.restore(
            id=uuid4(),
            category=FeeCategory(category),
            description=description.strip(),
            quantity=quantity,
            unit=unit,
            unit_rate=unit_rate,
            amount=unit_rate * quantity,
            is_interest_charge=is_interest_charge,
            display_order=display_order,
            fee_rate_id=fee_rate_id,
            created_at=created_at,
        )

    category = property(lambda self: self._category)
    description = property(lambda self: self._description)
    quantity = property(lambda self: self._quantity)
    unit = property(lambda self: self._unit)
    unit_rate = property(lambda self: self._unit_rate)
    amount = property(lambda self: self._amount)
    is_interest_charge = property(lambda self: self._is_interest_charge)
    display_order = property(lambda self: self._display_order)
    fee_rate_id = property(lambda self: self._fee_rate_id)
    created_at = property(lambda self: self._created_at)


class InvoicePayment(Entity):
    """A payment recorded against an invoice.  Created COMPLETED."""

    @classmethod
    def create(
        cls,
        *,
        amount: Money,
        method: LedgerPaymentMethod,
        reference: str | None,
        notes: str | None,
        recorded_by: str,
        now: datetime,
    ) -> InvoicePayment:
        return cls.restore(
            id=uuid4(),
            amount=amount,
            method=LedgerPaymentMethod(method),
            status=LedgerPaymentStatus.COMPLETED,
            reference=reference,
            payment_date=now.date(),
            receipt_number=generate_number("BVIA-RCP", now.date()),
            recorded_by=recorded_by,
            recorded_at=now,
            notes=notes,
        )

    amount = property(lambda self: self._amount)
    method = property(lambda self: self._method)
    status = property(lambda self: self._status)
    reference = property(lambda self: self._reference)
    payment_date = property(lambda self: self._payment_date)
    receipt_number = property(lambda self: self._receipt_number)
    recorded_by = property(lambda self: self._recorded_by)
    recorded_at = property(lambda self: self._recorded_at)
    notes = property(lambda self: self._notes)


# -----------------------------------------------------------------------------
# Invoice aggregate
# -----------------------------------------------------------------------------


class Invoice(AggregateRoot):
    """
    Per-flight revenue invoice.

    Contract: construct via ``create``.  Totals are properties computed from
    the owned line items and payments, and ``status`` is re-derived after
    every mutation, so neither can drift from the underlying records.
    """

    @classmethod
    def create(
        cls,
        *,
        tenant_id: str,
        operator_id: UUID,
        arrival_airport: BviAirport | str,
        operation_type: OperationType | str,
        flight_date: date,
        mtow: Weight,
        seat_count: int,
        today: date,
        now: datetime,
        passenger_count: int | None = None,
        departure_airport: str | None = None,
        aircraft_registration: str | None = None,
        application_id: UUID | None = None,
        notes: str | None = None,
        currency: Currency | str = Currency.USD,
        payment_terms_days: int = 30,
    ) -> Invoice:
        if operator_id is None:
            raise ValueError("Operator ID is required")
        if seat_count < 0:
            raise ValueError("Seat count cannot be negative")
        if passenger_count is not None and passenger_count < 0:
            raise ValueError("Passenger count cannot be negative")
        if payment_terms_days <= 0:
            raise ValueError("Payment terms must be positive")
        invoice = cls.restore(
            id=uuid4(),
            tenant_id=tenant_id,
            invoice_number=generate_number("BVIA-INV", today),
            operator_id=operator_id,
            application_id=application_id,
            status=InvoiceStatus.DRAFT,
            arrival_airport=BviAirport(arrival_airport),
            departure_airport=departure_airport,
            operation_type=OperationType(operation_type),
            flight_date=flight_date,
            aircraft_registration=aircraft_registration,
            mtow=mtow,
            seat_count=seat_count,
            passenger_count=passenger_count,
            currency=Currency.parse(currency),
            line_items=[],
            payments=[],
            payment_terms_days=payment_terms_days,
            invoice_date=today,
            due_date=today + timedelta(days=payment_terms_days),
            finalized_at=None,
            finalized_by=None,
            marked_overdue_at=None,
            cancelled_at=None,
            cancelled_by=None,
            cancellation_reason=None,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        invoice._raise_event(events.InvoiceCreated(
            occurred_at=now, **invoice._base_event(), application_id=application_id,
        ))
        return invoice

    tenant_id = property(lambda self: self._tenant_id)
    invoice_number = property(lambda self: self._invoice_number)
    operator_id = property(lambda self: self._operator_id)
    application_id = property(lambda self: self._application_id)
    status = property(lambda self: self._status)
    arrival_airport = property(lambda self: self._arrival_airport)
    departure_airport = property(lambda self: self._departure_airport)
    operation_type = property(lambda self: self._operation_type)
    flight_date = property(lambda self: self._flight_date)
    aircraft_registration = property(lambda self: self._aircraft_registration)
    mtow = property(lambda self: self._mtow)
    seat_count = property(lambda self: self._seat_count)
    passenger_count = property(lambda self: self._passenger_count)
    currency = property(lambda self: self._currency)
    payment_terms_days = property(lambda self: self._payment_terms_days)
    invoice_date = property(lambda self: self._invoice_date)
    due_date = property(lambda self: self._due_date)
    finalized_at = property(lambda self: self._finalized_at)
    finalized_by = property(lambda self: self._finalized_by)
    marked_overdue_at = property(lambda self: self._marked_overdue_at)
    cancelled_at = property(lambda self: self._cancelled_at)
    cancelled_by = property(lambda self: self._cancelled_by)
    cancellation_reason = property(lambda self: self._cancellation_reason)
    notes = property(lambda self: self._notes)
    created_at = property(lambda self: self._created_at)
    updated_at = property(lambda self: self._updated_at)

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(self._line_items)

    @property
    def payments(self) -> tuple[InvoicePayment, ...]:
        return tuple(self._payments)

    # -- derived amounts -----------------------------------------------------

    def _sum(self, amounts) -> Money:
        total = Money.zero(self._currency)
        for amount in amounts:
            total = total + amount
        return total

    @property
    def subtotal(self) -> Money:
        return self._sum(li.amount for li in self._line_items if not li.is_interest_charge)

    @property
    def total_interest(self) -> Money:
        return self._sum(li.amount for li in self._line_items if li.is_interest_charge)

    @property
    def total_amount(self) -> Money:
        return self.subtotal + self.total_interest

    @property
    def amount_paid(self) -> Money:
        return self._sum(
            p.amount for p in self._payments if p.status is LedgerPaymentStatus.COMPLETED
        )

    @property
    def balance_due(self) -> Money:
        return self.total_amount - self.amount_paid

    @property
    def last_interest_charge_at(self) -> datetime | None:
        stamps = [li.created_at for li in self._line_items if li.is_interest_charge]
        return max(stamps) if stamps else None

    def is_past_due(self, today: date) -> bool:
        return self._status in (
            InvoiceStatus.PENDING, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE
        ) and today > self._due_date

    def days_overdue(self, today: date) -> int:
        if not self.is_past_due(today):
            return 0
        return (today - self._due_date).days

    # -- helpers -------------------------------------------------------------

    def _derive_status(self) -> InvoiceStatus:
        if self._cancelled_at is not None:
            return InvoiceStatus.CANCELLED
        if self._finalized_at is None:
            return InvoiceStatus.DRAFT
        paid = self.amount_paid
        if paid.amount >= self.total_amount.amount:
            return InvoiceStatus.PAID
        if self._marked_overdue_at is not None:
            return InvoiceStatus.OVERDUE
        if paid.is_positive:
            return InvoiceStatus.PARTIALLY_PAID
        return InvoiceStatus.PENDING

    def _refresh(self, now: datetime) -> None:
        self._status = self._derive_status()
        self._updated_at = now

    def _check(self, action: str) -> None:
        if not INVOICE_WORKFLOW.allows(self._status.value, action):
            raise InvalidInvoiceStateError(self._invoice_number, self._status.value, action)

    def _base_event(self) -> dict:
        return {
            "invoice_id": self._id,
            "invoice_number": self._invoice_number,
            "operator_id": self._operator_id,
        }

    def _money(self, amount: Money | Decimal | int | str) -> Money:
        if isinstance(amount, Money):
            if amount.currency is not self._currency:
                raise CurrencyMismatchError(
                    self._currency.value, amount.currency.value, "apply"
                )
            return amount
        return Money.of(amount, self._currency)

    # -- draft editing -------------------------------------------------------

    def add_line_item(
        self,
        category: FeeCategory | str,
        description: str,
        quantity: Decimal,
        unit: str | None,
        unit_rate: Money | Decimal,
        now: datetime,
        fee_rate_id: UUID | None = None,
    ) -> LineItem:
        self._check("add_line_item")
        category = FeeCategory(category)
        if category is FeeCategory.LATE_PAYMENT_INTEREST:
            raise InvoiceError("Interest lines are added only through add_interest_charge")
        line = LineItem.create(
            category=category,
            description=description,
            quantity=quantity,
            unit=unit,
            unit_rate=self._money(unit_rate),
            display_order=len(self._line_items) + 1,
            created_at=now,
            fee_rate_id=fee_rate_id,
        )
        self._line_items.append(line)
        self._refresh(now)
        return line

    def remove_line_item(self, line_item_id: UUID, now: datetime) -> None:
        self._check("remove_line_item")
        remaining = [li for li in self._line_items if li.id != line_item_id]
        if len(remaining) == len(self._line_items):
            raise LineItemNotFoundError(line_item_id)
        self._line_items = remaining
        self._refresh(now)

    def finalize(self, finalized_by: str, today: date, now: datetime) -> None:
        """Draft -> Pending; the due date runs from the finalization date."""
        if self._status is not InvoiceStatus.DRAFT:
            raise InvalidInvoiceStateError(self._invoice_number, self._status.value, "finalize")
        if not (finalized_by or "").strip():
            raise InvoiceFinalizeError(self._invoice_number, "finalized_by is required")
        if not self._line_items:
            raise InvoiceFinalizeError(self._invoice_number, "invoice has no line items")
        self._finalized_by = finalized_by.strip()
        self._finalized_at = now
        self._invoice_date = today
        self._due_date = today + timedelta(days=self._payment_terms_days)
        self._refresh(now)
        self._raise_event(events.InvoiceFinalized(
            occurred_at=now, **self._base_event(),
            total_amount=self.total_amount, due_date=self._due_date,
        ))

    # -- payments ------------------------------------------------------------

    def record_payment(
        self,
        amount: Money | Decimal,
        method: LedgerPaymentMethod | str,
        reference: str | None,
        notes: str | None,
        recorded_by: str,
        now: datetime,
    ) -> InvoicePayment:
        self._check("record_payment")
        amount = self._money(amount)
        if not amount.is_positive:
            raise InvoiceError("Payment amount must be positive")
        if not (recorded_by or "").strip():
            raise InvoiceError("recorded_by is required")
        previous_balance = self.balance_due
        if previous_balance < amount:
            raise PaymentExceedsBalanceError(
                self._invoice_number, amount.amount, previous_balance.amount
            )
        was_overdue = self._status is InvoiceStatus.OVERDUE
        payment = InvoicePayment.create(
            amount=amount,
            method=LedgerPaymentMethod(method),
            reference=reference,
            notes=notes,
            recorded_by=recorded_by.strip(),
            now=now,
        )
        self._payments.append(payment)
        self._refresh(now)
        settled = self._status is InvoiceStatus.PAID
        self._raise_event(events.PaymentReceived(
            occurred_at=now, **self._base_event(),
            payment_id=payment.id,
            amount=amount,
            receipt_number=payment.receipt_number,
            previous_balance_due=previous_balance,
            was_overdue=was_overdue,
            settled=settled,
        ))
        if settled:
            self._raise_event(events.InvoicePaid(occurred_at=now, **self._base_event()))
        return payment

    # -- overdue and interest ------------------------------------------------

    def mark_overdue(self, today: date, now: datetime) -> None:
        self._check("mark_overdue")
        if not today > self._due_date:
            raise InvoiceError(
                f"Invoice {self._invoice_number} is not past its due date {self._due_date}"
            )
        self._marked_overdue_at = now
        self._refresh(now)
        self._raise_event(events.InvoiceMarkedOverdue(
            occurred_at=now, **self._base_event(),
            balance_due=self.balance_due,
            due_date=self._due_date,
            days_overdue=self.days_overdue(today),
        ))

    def add_interest_charge(self, amount: Money | Decimal, description: str, now: datetime) -> LineItem:
        if self._status is not InvoiceStatus.OVERDUE:
            raise InterestNotAllowedError(self._invoice_number, self._status.value)
        amount = self._money(amount)
        if not amount.is_positive:
            raise InvoiceError("Interest amount must be positive")
        line = LineItem.create(
            category=FeeCategory.LATE_PAYMENT_INTEREST,
            description=description,
            quantity=Decimal("1"),
            unit=None,
            unit_rate=amount,
            display_order=len(self._line_items) + 1,
            created_at=now,
            is_interest_charge=True,
        )
        self._line_items.append(line)
        self._refresh(now)
        self._raise_event(events.InterestCharged(
            occurred_at=now, **self._base_event(), line_item_id=line.id, amount=amount,
        ))
        return line

    # -- cancellation --------------------------------------------------------

    def cancel(self, cancelled_by: str, reason: str, now: datetime) -> None:
        self._check("cancel")
        if not (cancelled_by or "").strip():
            raise InvoiceError("cancelled_by is required")
        if not (reason or "").strip():
            raise InvoiceError("Cancellation reason is required")
        was_finalized = self._finalized_at is not None
        was_overdue = self._status is InvoiceStatus.OVERDUE
        balance = self.balance_due
        self._cancelled_at = now
        self._cancelled_by = cancelled_by.strip()
        self._cancellation_reason = reason.strip()
        self._refresh(now)
        self._raise_event(events.InvoiceCancelled(
            occurred_at=now, **self._base_event(),
            cancelled_by=self._cancelled_by,
            reason=self._cancellation_reason,
            was_finalized=was_finalized,
            was_overdue=was_overdue,
            balance_due=balance,
        ))


# -----------------------------------------------------------------------------
# Operator account balance
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EligibilityPolicy:
    """Debt thresholds; an operator above either one is blocked."""

    max_overdue_amount: Decimal = Decimal("0")
    max_overdue_invoices: int = 0

    @classmethod
    def from_settings(cls, settings: EligibilitySettings) -> EligibilityPolicy:
        return cls(
            max_overdue_amount=settings.max_overdue_amount,
            max_overdue_invoices=settings.max_overdue_invoices,
        )


@dataclass(frozen=True)
class EligibilityDecision:
    eligible: bool
    reasons: tuple[str, ...]
    outstanding: Money


class OperatorAccountBalance(AggregateRoot):
    """
    Running debt exposure of one operator.

    Mutated only through the ``record_*`` operations; there are no setters.
    """

    @classmethod
    def create(cls, *, tenant_id: str, operator_id: UUID, now: datetime,
               currency: Currency | str = Currency.USD) -> OperatorAccountBalance:
        if operator_id is None:
            raise ValueError("Operator ID is required")
        zero = Money.zero(currency)
        return cls.restore(
            id=uuid4(),
            tenant_id=tenant_id,
            operator_id=operator_id,
            currency=Currency.parse(currency),
            total_invoiced=zero,
            total_paid=zero,
            total_interest=zero,
            current_balance=zero,
            total_overdue=zero,
            invoice_count=0,
            paid_invoice_count=0,
            overdue_invoice_count=0,
            last_invoice_at=None,
            last_payment_at=None,
            last_overdue_at=None,
            created_at=now,
            updated_at=now,
        )

    tenant_id = property(lambda self: self._tenant_id)
    operator_id = property(lambda self: self._operator_id)
    currency = property(lambda self: self._currency)
    total_invoiced = property(lambda self: self._total_invoiced)
    total_paid = property(lambda self: self._total_paid)
    total_interest = property(lambda self: self._total_interest)
    current_balance = property(lambda self: self._current_balance)
    total_overdue = property(lambda self: self._total_overdue)
    invoice_count = property(lambda self: self._invoice_count)
    paid_invoice_count = property(lambda self: self._paid_invoice_count)
    overdue_invoice_count = property(lambda self: self._overdue_invoice_count)
    last_invoice_at = property(lambda self: self._last_invoice_at)
    last_payment_at = property(lambda self: self._last_payment_at)
    last_overdue_at = property(lambda self: self._last_overdue_at)
    created_at = property(lambda self: self._created_at)
    updated_at = property(lambda self: self._updated_at)

    @property
    def has_outstanding_debt(self) -> bool:
        return self._current_balance.is_positive

    @property
    def has_overdue_debt(self) -> bool:
        return self._total_overdue.is_positive

    @property
    def is_eligible(self) -> bool:
        return self.eligibility(EligibilityPolicy()).eligible

    # -- invoice finalized / cancelled --------------------------------------

    def record_invoice_finalized(self, amount: Money, now: datetime) -> None:
        self._total_invoiced = self._total_invoiced + amount
        self._current_balance = self._current_balance + amount
        self._invoice_count += 1
        self._last_invoice_at = now
        self._updated_at = now

    def record_invoice_cancelled(self, outstanding: Money, now: datetime) -> None:
        """Write off the unpaid remainder of a finalized invoice."""
        if self._current_balance < outstanding:
            raise AccountBalanceError(
                f"Cannot write off {outstanding}: balance is {self._current_balance}"
            )
        self._current_balance = self._current_balance - outstanding
        self._invoice_count = max(0, self._invoice_count - 1)
        self._updated_at = now

    # -- payments ------------------------------------------------------------

    def record_payment(self, amount: Money, now: datetime) -> None:
        if self._current_balance < amount:
            raise AccountBalanceError(
                f"Payment {amount} exceeds current balance {self._current_balance}"
            )
        self._total_paid = self._total_paid + amount
        self._current_balance = self._current_balance - amount
        self._last_payment_at = now
        self._updated_at = now

    def record_invoice_paid(self, now: datetime) -> None:
        self._paid_invoice_count += 1
        self._updated_at = now

    # -- overdue -------------------------------------------------------------

    def record_invoice_overdue(self, amount: Money, now: datetime) -> None:
        self._total_overdue = self._total_overdue + amount
        self._overdue_invoice_count += 1
        self._last_overdue_at = now
        self._updated_at = now

    def record_overdue_cleared(self, amount: Money, now: datetime, *, invoice_settled: bool = True) -> None:
        """
        Reduce overdue exposure.  ``invoice_settled`` is False for a partial
        payment on an overdue invoice: the amount drops but the invoice still
        counts as overdue.
        """
        if self._total_overdue < amount:
            raise NegativeOverdueError(
                self._operator_id, self._total_overdue.amount, amount.amount
            )
        self._total_overdue = self._total_overdue - amount
        if invoice_settled:
            self._overdue_invoice_count = max(0, self._overdue_invoice_count - 1)
        self._updated_at = now

    # -- interest ------------------------------------------------------------

    def record_interest_charge(self, amount: Money, now: datetime) -> None:
        self._total_interest = self._total_interest + amount
        self._current_balance = self._current_balance + amount
        self._total_overdue = self._total_overdue + amount
        self._updated_at = now

    # -- eligibility ---------------------------------------------------------

    def eligibility(self, policy: EligibilityPolicy) -> EligibilityDecision:
        reasons: list[str] = []
        if self._total_overdue.amount > policy.max_overdue_amount:
            reasons.append(f"Outstanding BVIAA debt: {self._total_overdue}")
        if self._overdue_invoice_count > policy.max_overdue_invoices:
            reasons.append(f"Overdue invoices: {self._overdue_invoice_count}")
        return EligibilityDecision(
            eligible=not reasons,
            reasons=tuple(reasons),
            outstanding=self._total_overdue,
        )


# -----------------------------------------------------------------------------
# Fee rate records
# -----------------------------------------------------------------------------


class FeeRate(Entity):
    """
    A persisted revenue rate.  ``None`` in operation type, airport or tier
    means the rate applies to any value; more specific rows win.
    """

    @classmethod
    def create(
        cls,
        *,
        category: FeeCategory | str,
        rate: Decimal,
        effective_from: date,
        now: datetime,
        operation_type: OperationType | str | None = None,
        airport: BviAirport | str | None = None,
        mtow_tier: MtowTier | str | None = None,
        is_per_unit: bool = False,
        unit_description: str | None = None,
        minimum_fee: Decimal | None = None,
        currency: Currency | str = Currency.USD,
        description: str | None = None,
    ) -> FeeRate:
        rate = to_decimal(rate)
        if rate < 0:
            raise ValueError(f"Fee rate cannot be negative: {rate}")
        if minimum_fee is not None and to_decimal(minimum_fee) < 0:
            raise ValueError("Minimum fee cannot be negative")
        return cls.restore(
            id=uuid4(),
            category=FeeCategory(category),
            operation_type=OperationType(operation_type) if operation_type else None,
            airport=BviAirport(airport) if airport else None,
            mtow_tier=MtowTier(mtow_tier) if mtow_tier else None,
            rate=rate,
            currency=Currency.parse(currency),
            is_per_unit=is_per_unit,
            unit_description=unit_description,
            minimum_fee=to_decimal(minimum_fee) if minimum_fee is not None else None,
            effective_from=effective_from,
            effective_to=None,
            description=description,
            is_active=True,
            updated_at=now,
        )

    category = property(lambda self: self._category)
    operation_type = property(lambda self: self._operation_type)
    airport = property(lambda self: self._airport)
    mtow_tier = property(lambda self: self._mtow_tier)
    rate = property(lambda self: self._rate)
    currency = property(lambda self: self._currency)
    is_per_unit = property(lambda self: self._is_per_unit)
    unit_description = property(lambda self: self._unit_description)
    minimum_fee = property(lambda self: self._minimum_fee)
    effective_from = property(lambda self: self._effective_from)
    effective_to = property(lambda self: self._effective_to)
    description = property(lambda self: self._description)
    is_active = property(lambda self: self._is_active)
    updated_at = property(lambda self: self._updated_at)

    def deactivate(self, effective_to: date, now: datetime) -> None:
        if not self._is_active:
            raise FeeRateError("Fee rate is already inactive")
        if effective_to < self._effective_from:
            raise FeeRateError("effective_to must not precede effective_from")
        self._is_active = False
        self._effective_to = effective_to
        self._updated_at = now

    def reactivate(self, now: datetime) -> None:
        if self._is_active:
            raise FeeRateError("Fee rate is already active")
        self._is_active = True
        self._effective_to = None
        self._updated_at = now

    def is_effective_on(self, on: date) -> bool:
        return (
            self._is_active
            and on >= self._effective_from
            and (self._effective_to is None or on <= self._effective_to)
        )
