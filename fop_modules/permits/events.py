"""Domain events raised by permits and the expiry job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fop_kernel.domain.events import DomainEvent
from fop_kernel.domain.values import Money


@dataclass(frozen=True, kw_only=True)
class PermitEvent(DomainEvent):
    permit_id: UUID
    permit_number: str
    operator_id: UUID


@dataclass(frozen=True, kw_only=True)
class PermitIssued(PermitEvent):
    application_id: UUID
    application_number: str
    valid_from: date
    valid_until: date
    fees_paid: Money
    issued_by: str


@dataclass(frozen=True, kw_only=True)
class PermitExpired(PermitEvent):
    valid_until: date


@dataclass(frozen=True, kw_only=True)
class PermitSuspended(PermitEvent):
    reason: str
    suspended_until: date | None


@dataclass(frozen=True, kw_only=True)
class PermitReinstated(PermitEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class PermitRevoked(PermitEvent):
    reason: str


@dataclass(frozen=True, kw_only=True)
class PermitExpiryWarningDue(PermitEvent):
    """
    Queued by the expiry job, not by the aggregate: the permit itself does
    not change when a warning is due.
    """

    application_id: UUID
    valid_until: date
    days_remaining: int
