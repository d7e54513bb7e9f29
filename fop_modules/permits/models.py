"""
Permit Domain Model (``fop_modules.permits.models``).

Responsibility
--------------
The issued Foreign Operator Permit.  A permit only comes into existence
through ``Permit.issue``, which the application service calls after the
issuance gate has authorized the operator.

Invariants enforced
-------------------
* ``valid_until >= valid_from``.
* Conditions are stored without blanks.
* Status changes follow ``PERMIT_WORKFLOW``; EXPIRED and REVOKED are final.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4

from fop_kernel.domain.events import AggregateRoot
from fop_kernel.domain.values import Money
from fop_kernel.domain.workflow import Workflow
from fop_kernel.exceptions import InvalidPermitStateError, PermitError
from fop_modules._numbering import generate_number
from fop_modules.permits import events
from fop_modules.permits.workflows import PERMIT_WORKFLOW

PERMIT_PREFIXES = {
    "ONE_TIME": "BVI-FOP-OT",
    "BLANKET": "BVI-FOP-BL",
    "EMERGENCY": "BVI-FOP-EM",
}


class PermitStatus(str, Enum):
    """Must align with ``workflows.PERMIT_WORKFLOW.states``."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


def generate_permit_number(permit_type: str, issued_on: date) -> str:
    """``BVI-FOP-OT-2026-3F9A0C``: type prefix, year, six hex digits."""
    prefix = PERMIT_PREFIXES.get(permit_type, "BVI-FOP")
    return generate_number(prefix, issued_on, date_format="%Y", suffix_len=6)


def _require(value: str | None, label: str) -> str:
    if value is None or not value.strip():
        raise PermitError(f"{label} is required")
    return value.strip()


class Permit(AggregateRoot):
    """
    An issued permit.

    Contract: construct via ``issue``; mutate only via ``expire``,
    ``suspend``, ``reinstate`` and ``revoke``.
    """

    workflow: Workflow = PERMIT_WORKFLOW

    @classmethod
    def issue(
        cls,
        *,
        tenant_id: str,
        application_id: UUID,
        application_number: str,
        permit_type: str,
        operator_id: UUID,
        aircraft_id: UUID,
        valid_from: date,
        valid_until: date,
        fees_paid: Money,
        issued_by: str,
        now: datetime,
        conditions: Iterable[str] | None = None,
        permit_number: str | None = None,
    ) -> Permit:
        if application_id is None or operator_id is None or aircraft_id is None:
            raise PermitError("Application, operator and aircraft ids are required")
        application_number = _require(application_number, "Application number")
        issued_by = _require(issued_by, "Issued by")
        if valid_until < valid_from:
            raise PermitError("valid_until must not precede valid_from")
        permit = cls.restore(
            id=uuid4(),
            tenant_id=tenant_id,
            permit_number=permit_number or generate_permit_number(permit_type, now.date()),
            application_id=application_id,
            application_number=application_number,
            permit_type=permit_type,
            status=PermitStatus.ACTIVE,
            operator_id=operator_id,
            aircraft_id=aircraft_id,
            valid_from=valid_from,
            valid_until=valid_until,
            fees_paid=fees_paid,
            conditions=[c.strip() for c in (conditions or ()) if c and c.strip()],
            document_url=None,
            issued_by=issued_by,
            issued_at=now,
            suspension_reason=None,
            suspended_until=None,
            revocation_reason=None,
            revoked_at=None,
            expired_at=None,
            created_at=now,
            updated_at=now,
        )
        permit._raise_event(events.PermitIssued(
            occurred_at=now, **permit._base_event(),
            application_id=application_id,
            application_number=application_number,
            valid_from=valid_from,
            valid_until=valid_until,
            fees_paid=fees_paid,
            issued_by=issued_by,
        ))
        return permit

    tenant_id = property(lambda self: self._tenant_id)
    permit_number = property(lambda self: self._permit_number)
    application_id = property(lambda self: self._application_id)
    application_number = property(lambda self: self._application_number)
    permit_type = property(lambda self: self._permit_type)
    status = property(lambda self: self._status)
    operator_id = property(lambda self: self._operator_id)
    aircraft_id = property(lambda self: self._aircraft_id)
    valid_from = property(lambda self: self._valid_from)
    valid_until = property(lambda self: self._valid_until)
    fees_paid = property(lambda self: self._fees_paid)
    document_url = property(lambda self: self._document_url)
    issued_by = property(lambda self: self._issued_by)
    issued_at = property(lambda self: self._issued_at)
    suspension_reason = property(lambda self: self._suspension_reason)
    suspended_until = property(lambda self: self._suspended_until)
    revocation_reason = property(lambda self: self._revocation_reason)
    revoked_at = property(lambda self: self._revoked_at)
    expired_at = property(lambda self: self._expired_at)
    created_at = property(lambda self: self._created_at)
    updated_at = property(lambda self: self._updated_at)

    @property
    def conditions(self) -> tuple[str, ...]:
        return tuple(self._conditions)

    # -- queries -------------------------------------------------------------

    def is_valid(self, as_of: date) -> bool:
        return self._status is PermitStatus.ACTIVE and self._valid_from <= as_of <= self._valid_until

    def is_expired(self, as_of: date) -> bool:
        return as_of > self._valid_until

    def days_until_expiry(self, as_of: date) -> int:
        return (self._valid_until - as_of).days

    # -- helpers -------------------------------------------------------------

    def _check(self, action: str) -> PermitStatus:
        transition = self.workflow.find(self._status.value, action)
        if transition is None:
            raise InvalidPermitStateError(self._permit_number, self._status.value, action)
        return PermitStatus(transition.to_state)

    def _base_event(self) -> dict:
        return {
            "permit_id": self._id,
            "permit_number": self._permit_number,
            "operator_id": self._operator_id,
        }

    # -- lifecycle -----------------------------------------------------------

    def attach_document(self, document_url: str, now: datetime) -> None:
        self._document_url = _require(document_url, "Document URL")
        self._updated_at = now

    def expire(self, today: date, now: datetime) -> None:
        target = self._check("expire")
        if not self.is_expired(today):
            raise PermitError(
                f"Permit {self._permit_number} is valid until {self._valid_until}"
            )
        self._status = target
        self._expired_at = now
        self._updated_at = now
        self._raise_event(events.PermitExpired(
            occurred_at=now, **self._base_event(), valid_until=self._valid_until,
        ))

    def suspend(self, reason: str, now: datetime, suspended_until: date | None = None) -> None:
        target = self._check("suspend")
        reason = _require(reason, "Suspension reason")
        self._status = target
        self._suspension_reason = reason
        self._suspended_until = suspended_until
        self._updated_at = now
        self._raise_event(events.PermitSuspended(
            occurred_at=now, **self._base_event(),
            reason=reason, suspended_until=suspended_until,
        ))

    def reinstate(self, now: datetime) -> None:
        self._status = self._check("reinstate")
        self._suspension_reason = None
        self._suspended_until = None
        self._updated_at = now
        self._raise_event(events.PermitReinstated(occurred_at=now, **self._base_event()))

    def revoke(self, reason: str, now: datetime) -> None:
        target = self._check("revoke")
        reason = _require(reason, "Revocation reason")
        self._status = target
        self._revocation_reason = reason
        self._revoked_at = now
        self._updated_at = now
        self._raise_event(events.PermitRevoked(
            occurred_at=now, **self._base_event(), reason=reason,
        ))
