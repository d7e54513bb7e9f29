"""
Notification senders (``fop_modules.notifications.sender``).

The core never talks to a mail server.  It calls a ``NotificationSender``
with typed parameters and leaves recipient resolution and delivery to the
implementation.  Calls are fire-and-forget; the event handlers that make
them catch and log any failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from fop_kernel.domain.values import Money
from fop_kernel.logging_config import get_logger

logger = get_logger("modules.notifications.sender")


@runtime_checkable
class NotificationSender(Protocol):
    """Outbound notifications the FOP core emits."""

    def application_submitted(self, *, operator_id: UUID, application_number: str) -> None: ...

    def application_approved(
        self, *, operator_id: UUID, application_number: str, permit_number: str
    ) -> None: ...

    def application_rejected(
        self, *, operator_id: UUID, application_number: str, reason: str
    ) -> None: ...

    def permit_expiry_warning(
        self,
        *,
        operator_id: UUID,
        permit_number: str,
        expiry_date: date,
        days_until_expiry: int,
    ) -> None: ...

    def officer_new_application(
        self,
        *,
        application_number: str,
        application_type: str,
        operator_id: UUID,
        fee: Money,
    ) -> None: ...

    def invoice_overdue(
        self,
        *,
        operator_id: UUID,
        invoice_number: str,
        balance_due: Money,
        days_overdue: int,
    ) -> None: ...

    def payment_confirmation(
        self,
        *,
        operator_id: UUID,
        invoice_number: str,
        amount: Money,
        receipt_number: str,
    ) -> None: ...


def _loggable(value: Any) -> Any:
    if isinstance(value, (UUID, Money, date)):
        return str(value)
    return value


class LoggingNotificationSender:
    """Writes every notification to the structured log instead of sending it."""

    def _emit(self, kind: str, **params: Any) -> None:
        logger.info(
            "notification_sent",
            extra={"notification": kind, **{k: _loggable(v) for k, v in params.items()}},
        )

    def application_submitted(self, *, operator_id, application_number):
        self._emit("application_submitted", operator_id=operator_id,
                   application_number=application_number)

    def application_approved(self, *, operator_id, application_number, permit_number):
        self._emit("application_approved", operator_id=operator_id,
                   application_number=application_number, permit_number=permit_number)

    def application_rejected(self, *, operator_id, application_number, reason):
        self._emit("application_rejected", operator_id=operator_id,
                   application_number=application_number, reason=reason)

    def permit_expiry_warning(self, *, operator_id, permit_number, expiry_date, days_until_expiry):
        self._emit("permit_expiry_warning", operator_id=operator_id,
                   permit_number=permit_number, expiry_date=expiry_date,
                   days_until_expiry=days_until_expiry)

    def officer_new_application(self, *, application_number, application_type, operator_id, fee):
        self._emit("officer_new_application", application_number=application_number,
                   application_type=application_type, operator_id=operator_id, fee=fee)

    def invoice_overdue(self, *, operator_id, invoice_number, balance_due, days_overdue):
        self._emit("invoice_overdue", operator_id=operator_id,
                   invoice_number=invoice_number, balance_due=balance_due,
                   days_overdue=days_overdue)

    def payment_confirmation(self, *, operator_id, invoice_number, amount, receipt_number):
        self._emit("payment_confirmation", operator_id=operator_id,
                   invoice_number=invoice_number, amount=amount,
                   receipt_number=receipt_number)


@dataclass(frozen=True)
class SentNotification:
    kind: str
    params: dict[str, Any]


@dataclass
class RecordingNotificationSender(LoggingNotificationSender):
    """
    Keeps every notification in memory.

    Used by local runs and tests to assert on what would have been sent.
    """

    sent: list[SentNotification] = field(default_factory=list)

    def _emit(self, kind: str, **params: Any) -> None:
        self.sent.append(SentNotification(kind, dict(params)))
        super()._emit(kind, **params)

    def of_kind(self, kind: str) -> list[SentNotification]:
        return [n for n in self.sent if n.kind == kind]

    def clear(self) -> None:
        self.sent.clear()
