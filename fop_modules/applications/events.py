"""Domain events raised by the permit application aggregate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fop_kernel.domain.events import DomainEvent
from fop_kernel.domain.values import Money, Weight


@dataclass(frozen=True, kw_only=True)
class ApplicationEvent(DomainEvent):
    application_id: UUID
    application_number: str
    operator_id: UUID


@dataclass(frozen=True, kw_only=True)
class ApplicationSubmitted(ApplicationEvent):
    """Carries the fee frozen at submission and the flight facts needed to invoice it."""

    application_type: str
    calculated_fee: Money
    arrival_airport: str
    flight_purpose: str
    estimated_flight_date: date
    number_of_passengers: int
    mtow: Weight
    seat_count: int
    aircraft_id: UUID


@dataclass(frozen=True, kw_only=True)
class ApplicationUnderReview(ApplicationEvent):
    reviewer: str


@dataclass(frozen=True, kw_only=True)
class DocumentVerified(ApplicationEvent):
    document_id: UUID
    document_type: str
    verified_by: str


@dataclass(frozen=True, kw_only=True)
class DocumentRejected(ApplicationEvent):
    document_id: UUID
    document_type: str
    rejected_by: str
    reason: str


@dataclass(frozen=True, kw_only=True)
class PaymentCompleted(ApplicationEvent):
    payment_id: UUID
    amount: Money
    transaction_reference: str
    receipt_number: str


@dataclass(frozen=True, kw_only=True)
class ApplicationApproved(ApplicationEvent):
    approved_by: str
    notes: str | None


@dataclass(frozen=True, kw_only=True)
class ApplicationRejected(ApplicationEvent):
    rejected_by: str
    reason: str


@dataclass(frozen=True, kw_only=True)
class ApplicationCancelled(ApplicationEvent):
    reason: str | None


@dataclass(frozen=True, kw_only=True)
class ApplicationExpired(ApplicationEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class FeeOverridden(ApplicationEvent):
    previous_fee: Money
    new_fee: Money
    overridden_by: str
    justification: str


@dataclass(frozen=True, kw_only=True)
class WaiverRequested(ApplicationEvent):
    waiver_id: UUID
    waiver_type: str
    requested_by: str


@dataclass(frozen=True, kw_only=True)
class WaiverApproved(ApplicationEvent):
    waiver_id: UUID
    approved_by: str
    waiver_percentage: Decimal
    waived_amount: Money
    new_fee: Money


@dataclass(frozen=True, kw_only=True)
class WaiverRejected(ApplicationEvent):
    waiver_id: UUID
    rejected_by: str
    reason: str
