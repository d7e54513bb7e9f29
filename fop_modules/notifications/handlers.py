"""
Post-commit event handlers (``fop_modules.notifications.handlers``).

Responsibility
--------------
Turns committed domain events into side effects:

* applicant and officer notifications,
* the automatic pre-arrival invoice for applications arriving at a BVI
  airport,
* overdue, expiry-warning and payment-confirmation notifications.

Handlers run after the triggering transaction committed.  A failure here
is logged by the dispatcher and never undoes the core change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fop_kernel.logging_config import get_logger
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_modules.applications.events import ApplicationRejected, ApplicationSubmitted
from fop_modules.applications.models import ApplicationType, FlightPurpose
from fop_modules.notifications.sender import NotificationSender
from fop_modules.permits.events import PermitExpiryWarningDue, PermitIssued
from fop_modules.revenue.events import InvoiceMarkedOverdue, PaymentReceived
from fop_modules.revenue.models import BviAirport, OperationType

if TYPE_CHECKING:
    from fop_modules.revenue.service import RevenueService

logger = get_logger("modules.notifications.handlers")

_PURPOSE_OPERATION_TYPES = {
    FlightPurpose.CHARTER.value: OperationType.CHARTER,
    FlightPurpose.CARGO.value: OperationType.CHARTER,
    FlightPurpose.MEDEVAC.value: OperationType.EMERGENCY,
}


def operation_type_for(application_type: str, flight_purpose: str) -> OperationType:
    """Revenue operation type used to price a submitted application's flight."""
    if application_type == ApplicationType.EMERGENCY.value:
        return OperationType.EMERGENCY
    return _PURPOSE_OPERATION_TYPES.get(flight_purpose, OperationType.GENERAL_AVIATION)


class NotificationHandlers:
    def __init__(self, sender: NotificationSender, revenue: RevenueService | None = None):
        self._sender = sender
        self._revenue = revenue

    def on_application_submitted(self, event: ApplicationSubmitted) -> None:
        self._sender.application_submitted(
            operator_id=event.operator_id,
            application_number=event.application_number,
        )
        self._sender.officer_new_application(
            application_number=event.application_number,
            application_type=event.application_type,
            operator_id=event.operator_id,
            fee=event.calculated_fee,
        )

    def on_application_submitted_invoice(self, event: ApplicationSubmitted) -> None:
        airport = BviAirport.lookup(event.arrival_airport)
        if airport is None:
            logger.info(
                "pre_arrival_invoice_skipped",
                extra={
                    "application_number": event.application_number,
                    "arrival_airport": event.arrival_airport,
                },
            )
            return
        result = self._revenue.create_pre_arrival_invoice(
            application_id=event.application_id,
            application_number=event.application_number,
            operator_id=event.operator_id,
            arrival_airport=airport,
            operation_type=operation_type_for(event.application_type, event.flight_purpose),
            flight_date=event.estimated_flight_date,
            mtow=event.mtow,
            seat_count=event.seat_count,
            passenger_count=event.number_of_passengers,
        )
        if result.is_failure:
            logger.warning(
                "pre_arrival_invoice_failed",
                extra={
                    "application_number": event.application_number,
                    "error_code": result.error.code,
                    "error_message": result.error.message,
                },
            )
            return
        logger.info(
            "pre_arrival_invoice_created",
            extra={
                "application_number": event.application_number,
                "invoice_number": result.value.invoice_number,
            },
        )

    def on_permit_issued(self, event: PermitIssued) -> None:
        self._sender.application_approved(
            operator_id=event.operator_id,
            application_number=event.application_number,
            permit_number=event.permit_number,
        )

    def on_application_rejected(self, event: ApplicationRejected) -> None:
        self._sender.application_rejected(
            operator_id=event.operator_id,
            application_number=event.application_number,
            reason=event.reason,
        )

    def on_permit_expiry_warning(self, event: PermitExpiryWarningDue) -> None:
        self._sender.permit_expiry_warning(
            operator_id=event.operator_id,
            permit_number=event.permit_number,
            expiry_date=event.valid_until,
            days_until_expiry=event.days_remaining,
        )

    def on_invoice_overdue(self, event: InvoiceMarkedOverdue) -> None:
        self._sender.invoice_overdue(
            operator_id=event.operator_id,
            invoice_number=event.invoice_number,
            balance_due=event.balance_due,
            days_overdue=event.days_overdue,
        )

    def on_payment_received(self, event: PaymentReceived) -> None:
        self._sender.payment_confirmation(
            operator_id=event.operator_id,
            invoice_number=event.invoice_number,
            amount=event.amount,
            receipt_number=event.receipt_number,
        )


def register_default_handlers(
    dispatcher: EventDispatcher,
    sender: NotificationSender,
    *,
    revenue: RevenueService | None = None,
    auto_invoice: bool | None = None,
) -> NotificationHandlers:
    """
    Subscribe the standard handlers to ``dispatcher``.

    The pre-arrival invoice handler is only wired when a revenue service is
    supplied and ``auto_invoice`` is set.  ``auto_invoice`` defaults to the
    service's ``auto_invoice_on_submission`` setting.
    """
    handlers = NotificationHandlers(sender, revenue)
    if auto_invoice is None:
        auto_invoice = revenue is not None and revenue.settings.auto_invoice_on_submission
    dispatcher.subscribe(ApplicationSubmitted, handlers.on_application_submitted)
    if revenue is not None and auto_invoice:
        dispatcher.subscribe(ApplicationSubmitted, handlers.on_application_submitted_invoice)
    dispatcher.subscribe(PermitIssued, handlers.on_permit_issued)
    dispatcher.subscribe(ApplicationRejected, handlers.on_application_rejected)
    dispatcher.subscribe(PermitExpiryWarningDue, handlers.on_permit_expiry_warning)
    dispatcher.subscribe(InvoiceMarkedOverdue, handlers.on_invoice_overdue)
    dispatcher.subscribe(PaymentReceived, handlers.on_payment_received)
    logger.info(
        "notification_handlers_registered",
        extra={"auto_invoice": revenue is not None and auto_invoice},
    )
    return handlers
