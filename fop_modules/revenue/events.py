"""Domain events raised by invoices."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fop_kernel.domain.events import DomainEvent
from fop_kernel.domain.values import Money


@dataclass(frozen=True, kw_only=True)
class InvoiceEvent(DomainEvent):
    invoice_id: UUID
    invoice_number: str
    operator_id: UUID


@dataclass(frozen=True, kw_only=True)
class InvoiceCreated(InvoiceEvent):
    application_id: UUID | None


@dataclass(frozen=True, kw_only=True)
class InvoiceFinalized(InvoiceEvent):
    total_amount: Money
    due_date: date


@dataclass(frozen=True, kw_only=True)
class PaymentReceived(InvoiceEvent):
    """
    ``previous_balance_due`` and ``was_overdue`` let balance bookkeeping
    clear the right overdue amount without re-reading the invoice.
    """

    payment_id: UUID
    amount: Money
    receipt_number: str
    previous_balance_due: Money
    was_overdue: bool
    settled: bool


@dataclass(frozen=True, kw_only=True)
class InvoicePaid(InvoiceEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class InvoiceMarkedOverdue(InvoiceEvent):
    balance_due: Money
    due_date: date
    days_overdue: int


@dataclass(frozen=True, kw_only=True)
class InterestCharged(InvoiceEvent):
    line_item_id: UUID
    amount: Money


@dataclass(frozen=True, kw_only=True)
class InvoiceCancelled(InvoiceEvent):
    cancelled_by: str
    reason: str
    was_finalized: bool
    was_overdue: bool
    balance_due: Money
