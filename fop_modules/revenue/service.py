"""
Revenue Ledger Service - Orchestrates invoices, payments and account balances.

Thin glue layer that:
1. Validates command input with the pydantic models in ``validation.py``
2. Loads aggregates through tenant-scoped repositories
3. Calls RevenueFeeScheduleEngine to itemize per-flight charges
4. Keeps the operator account balance in step via BalanceBookkeeper

Each public operation is one unit of work: the invoice and the balance are
committed together or not at all, and events are dispatched after commit.

Usage:
    service = RevenueService(session, tenant_id="bvi", clock=clock)
    result = service.create_invoice(
        operator_id=operator_id, arrival_airport="TUPJ",
        operation_type="GENERAL_AVIATION", flight_date=date(2026, 3, 1),
        mtow_value=Decimal("12000"), seat_count=8,
    )
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from fop_config.schema import EligibilitySettings, RevenueSettings, SchedulingSettings
from fop_kernel.domain.clock import Clock, SystemClock, local_today
from fop_kernel.domain.result import Result
from fop_kernel.domain.values import Currency, Money, Weight
from fop_kernel.logging_config import get_logger
from fop_kernel.services.boundary import parse_command, run_operation
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork
from fop_modules.revenue.balances import BalanceBookkeeper
from fop_modules.revenue.fee_schedule import (
    FlightChargeRequest,
    FlightCharges,
    RevenueFeeScheduleEngine,
    RevenueRatePolicy,
)
from fop_modules.revenue.models import (
    BviAirport,
    EligibilityDecision,
    EligibilityPolicy,
    FeeRate,
    Invoice,
    InvoicePayment,
    OperationType,
    OperatorAccountBalance,
)
from fop_modules.revenue.repository import (
    AccountBalanceRepository,
    FeeRateRepository,
    InvoiceRepository,
)
from fop_modules.revenue.validation import (
    AddLineItemCommand,
    CancelInvoiceCommand,
    CreateFeeRateCommand,
    CreateInvoiceCommand,
    DeactivateFeeRateCommand,
    FinalizeInvoiceCommand,
    FlightChargesCommand,
    RecordPaymentCommand,
)

logger = get_logger("modules.revenue.service")

INVOICE_OPERATION = "Invoice.InvalidOperation"
FINALIZE_OPERATION = "Invoice.FinalizeError"
PAYMENT_OPERATION = "Payment.RecordError"
FEE_RATE_OPERATION = "FeeRate.InvalidOperation"


class _RevenueWork:
    """Repositories sharing one unit of work."""

    def __init__(self, session: Session, tenant_id: str, dispatcher: EventDispatcher | None):
        self.uow = UnitOfWork(session, dispatcher)
        self.invoices = InvoiceRepository(session, tenant_id, self.uow)
        self.balances = AccountBalanceRepository(session, tenant_id, self.uow)
        self.fee_rates = FeeRateRepository(session, tenant_id, self.uow)
        self.bookkeeper = BalanceBookkeeper(self.balances)


class RevenueService:
    """
    Orchestrates the per-flight revenue ledger.

    Engine composition:
    - RevenueFeeScheduleEngine: itemized landing, navigation, passenger and
      service charges; rates from active FeeRate rows over the defaults
    - BalanceBookkeeper: operator account balance mutations

    Invoice and due dates are calendar dates at ``utc_offset_hours``, the
    same local date the daily jobs compare against.

    Transaction boundary: this service commits on success, rolls back on failure.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        dispatcher: EventDispatcher | None = None,
        settings: RevenueSettings | None = None,
        eligibility: EligibilitySettings | None = None,
        utc_offset_hours: int | None = None,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher
        self._settings = settings or RevenueSettings()
        self._policy = EligibilityPolicy.from_settings(eligibility or EligibilitySettings())
        self._currency = Currency.parse(self._settings.currency)
        self._engine = RevenueFeeScheduleEngine(self._currency)
        if utc_offset_hours is None:
            utc_offset_hours = SchedulingSettings().utc_offset_hours
        self._utc_offset_hours = utc_offset_hours

    @property
    def settings(self) -> RevenueSettings:
        return self._settings

    def _today(self, now: datetime) -> date:
        return local_today(now, self._utc_offset_hours)

    def _work(self) -> _RevenueWork:
        return _RevenueWork(self._session, self._tenant_id, self._dispatcher)

    def rate_policy(self, work: _RevenueWork, on: date) -> RevenueRatePolicy:
        return RevenueRatePolicy(work.fee_rates.list_active(), effective_on=on)

    # =========================================================================
    # Invoices
    # =========================================================================

    def create_invoice(self, **data: Any) -> Result[Invoice]:
        work = self._work()

        def operation() -> Invoice:
            cmd = parse_command(CreateInvoiceCommand, **data)
            now = self._clock.now_utc()
            invoice = Invoice.create(
                tenant_id=self._tenant_id,
                operator_id=cmd.operator_id,
                arrival_airport=cmd.arrival_airport,
                operation_type=cmd.operation_type,
                flight_date=cmd.flight_date,
                mtow=Weight(cmd.mtow_value, cmd.mtow_unit),
                seat_count=cmd.seat_count,
                passenger_count=cmd.passenger_count,
                departure_airport=cmd.departure_airport,
                aircraft_registration=cmd.aircraft_registration,
                application_id=cmd.application_id,
                notes=cmd.notes,
                currency=self._currency,
                payment_terms_days=self._settings.payment_terms_days,
                today=self._today(now),
                now=now,
            )
            work.invoices.add(invoice)
            work.bookkeeper.get_or_create(cmd.operator_id, now, self._currency)
            return invoice

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="invoice_create",
            log_extra={"operator_id": str(data.get("operator_id"))},
        )

    def create_pre_arrival_invoice(
        self,
        *,
        application_id: UUID,
        application_number: str,
        operator_id: UUID,
        arrival_airport: BviAirport,
        operation_type: OperationType,
        flight_date: date,
        mtow: Weight,
        seat_count: int,
        passenger_count: int,
    ) -> Result[Invoice]:
        """Draft invoice carrying the full default charge breakdown for a submitted application."""
        work = self._work()

        def operation() -> Invoice:
            now = self._clock.now_utc()
            invoice = Invoice.create(
                tenant_id=self._tenant_id,
                operator_id=operator_id,
                arrival_airport=arrival_airport,
                operation_type=operation_type,
                flight_date=flight_date,
                mtow=mtow,
                seat_count=seat_count,
                passenger_count=passenger_count,
                application_id=application_id,
                notes=f"Auto-generated from FOP Application {application_number}",
                currency=self._currency,
                payment_terms_days=self._settings.payment_terms_days,
                today=self._today(now),
                now=now,
            )
            charges = self._engine.calculate(
                FlightChargeRequest(
                    mtow=mtow,
                    operation_type=operation_type,
                    airport=arrival_airport,
                    passenger_count=passenger_count,
                ),
                self.rate_policy(work, flight_date),
            )
            self._apply_charges(invoice, charges, now)
            work.invoices.add(invoice)
            work.bookkeeper.get_or_create(operator_id, now, self._currency)
            return invoice

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="pre_arrival_invoice_create",
            log_extra={
                "application_id": str(application_id),
                "operator_id": str(operator_id),
            },
        )

    def add_line_item(self, invoice_id: UUID, **data: Any) -> Result[Invoice]:
        work = self._work()

        def operation() -> Invoice:
            cmd = parse_command(AddLineItemCommand, **data)
            invoice = work.invoices.get(invoice_id)
            invoice.add_line_item(
                cmd.category, cmd.description, cmd.quantity, cmd.unit,
                Money.of(cmd.unit_rate, invoice.currency), self._clock.now_utc(),
            )
            return invoice

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="invoice_add_line_item",
            log_extra={"invoice_id": str(invoice_id)},
        )

    def remove_line_item(self, invoice_id: UUID, line_item_id: UUID) -> Result[Invoice]:
        work = self._work()

        def operation() -> Invoice:
            invoice = work.invoices.get(invoice_id)
            invoice.remove_line_item(line_item_id, self._clock.now_utc())
            return invoice

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="invoice_remove_line_item",
            log_extra={"invoice_id": str(invoice_id), "line_item_id": str(line_item_id)},
        )

    def add_flight_charges(self, invoice_id: UUID, **data: Any) -> Result[FlightCharges]:
        """Itemize the invoice's flight with the fee schedule and append every line."""
        work = self._work()

        def operation() -> FlightCharges:
            cmd = parse_command(FlightChargesCommand, **data)
            invoice = work.invoices.get(invoice_id)
            charges = self._engine.calculate(
                FlightChargeRequest(
                    mtow=invoice.mtow,
                    operation_type=invoice.operation_type,
                    airport=invoice.arrival_airport,
                    passenger_count=invoice.passenger_count or 0,
                    parking_hours=cmd.parking_hours,
                    fuel_gallons=cmd.fuel_gallons,
                    lighting_hours=cmd.lighting_hours,
                    operation_hour=cmd.operation_hour,
                    include_flight_plan_filing=cmd.include_flight_plan_filing,
                    requires_cat_vi_fire=cmd.requires_cat_vi_fire,
                ),
                self.rate_policy(work, invoice.flight_date),
            )
            self._apply_charges(invoice, charges, self._clock.now_utc())
            return charges

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="invoice_add_flight_charges",
            log_extra={"invoice_id": str(invoice_id)},
        )

    def _apply_charges(self, invoice: Invoice, charges: FlightCharges, now) -> None:
        for line in charges.lines:
            invoice.add_line_item(
                line.category, line.description, line.quantity, line.unit,
                line.unit_rate, now, fee_rate_id=line.fee_rate_id,
            )

    def finalize(self, invoice_id: UUID, **data: Any) -> Result[Invoice]:
        work = self._work()

        def operation() -> Invoice:
            cmd = parse_command(FinalizeInvoiceCommand, **data)
            now = self._clock.now_utc()
            invoice = work.invoices.get(invoice_id)
            invoice.finalize(cmd.finalized_by, self._today(now), now)
            work.bookkeeper.invoice_finalized(invoice, now)
            return invoice

        return run_operation(
            work.uow, FINALIZE_OPERATION, operation,
            log_event="invoice_finalize",
            log_extra={"invoice_id": str(invoice_id)},
        )

    def record_payment(self, invoice_id: UUID, **data: Any) -> Result[InvoicePayment]:
        work = self._work()

        def operation() -> InvoicePayment:
            cmd = parse_command(RecordPaymentCommand, **data)
            now = self._clock.now_utc()
            invoice = work.invoices.get(invoice_id)
            previous_balance = invoice.balance_due
            was_overdue = invoice.marked_overdue_at is not None
            payment = invoice.record_payment(
                Money.of(cmd.amount, invoice.currency), cmd.method,
                cmd.reference, cmd.notes, cmd.recorded_by, now,
            )
            work.bookkeeper.payment_recorded(
                invoice, payment.amount, previous_balance, was_overdue, now
            )
            return payment

        return run_operation(
            work.uow, PAYMENT_OPERATION, operation,
            log_event="invoice_record_payment",
            log_extra={"invoice_id": str(invoice_id), "amount": str(data.get("amount"))},
        )

    def cancel(self, invoice_id: UUID, **data: Any) -> Result[Invoice]:
        work = self._work()

        def operation() -> Invoice:
            cmd = parse_command(CancelInvoiceCommand, **data)
            now = self._clock.now_utc()
            invoice = work.invoices.get(invoice_id)
            was_finalized = invoice.finalized_at is not None
            was_overdue = invoice.marked_overdue_at is not None
            outstanding = invoice.balance_due
            invoice.cancel(cmd.cancelled_by, cmd.reason, now)
            work.bookkeeper.invoice_cancelled(
                invoice, outstanding, was_finalized, was_overdue, now
            )
            return invoice

        return run_operation(
            work.uow, INVOICE_OPERATION, operation,
            log_event="invoice_cancel",
            log_extra={"invoice_id": str(invoice_id)},
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        return self._work().invoices.get(invoice_id)

    def find_invoice_by_number(self, invoice_number: str) -> Invoice | None:
        return self._work().invoices.find_by_number(invoice_number)

    def list_invoices_for_operator(self, operator_id: UUID) -> list[Invoice]:
        return self._work().invoices.list_for_operator(operator_id)

    def list_invoices_for_application(self, application_id: UUID) -> list[Invoice]:
        return self._work().invoices.list_for_application(application_id)

    def get_account_balance(self, operator_id: UUID) -> OperatorAccountBalance | None:
        return self._work().balances.find_by_operator(operator_id)

    def check_eligibility(self, operator_id: UUID) -> EligibilityDecision:
        balance = self.get_account_balance(operator_id)
        if balance is None:
            return EligibilityDecision(True, (), Money.zero(self._currency))
        return balance.eligibility(self._policy)

    def quote_flight_charges(self, request: FlightChargeRequest, on: date | None = None) -> FlightCharges:
        """Price a flight without touching any invoice."""
        on = on or self._today(self._clock.now_utc())
        return self._engine.calculate(request, self.rate_policy(self._work(), on))

    # =========================================================================
    # Fee rates
    # =========================================================================

    def create_fee_rate(self, **data: Any) -> Result[FeeRate]:
        work = self._work()

        def operation() -> FeeRate:
            cmd = parse_command(CreateFeeRateCommand, **data)
            rate = FeeRate.create(
                category=cmd.category,
                rate=cmd.rate,
                effective_from=cmd.effective_from,
                now=self._clock.now_utc(),
                operation_type=cmd.operation_type,
                airport=cmd.airport,
                mtow_tier=cmd.mtow_tier,
                is_per_unit=cmd.is_per_unit,
                unit_description=cmd.unit_description,
                minimum_fee=cmd.minimum_fee,
                currency=cmd.currency,
                description=cmd.description,
            )
            work.fee_rates.add(rate)
            return rate

        return run_operation(
            work.uow, FEE_RATE_OPERATION, operation,
            log_event="fee_rate_create",
            log_extra={"category": str(data.get("category"))},
        )

    def deactivate_fee_rate(self, fee_rate_id: UUID, **data: Any) -> Result[FeeRate]:
        work = self._work()

        def operation() -> FeeRate:
            cmd = parse_command(DeactivateFeeRateCommand, **data)
            rate = work.fee_rates.get(fee_rate_id)
            rate.deactivate(cmd.effective_to, self._clock.now_utc())
            return rate

        return run_operation(
            work.uow, FEE_RATE_OPERATION, operation,
            log_event="fee_rate_deactivate",
            log_extra={"fee_rate_id": str(fee_rate_id)},
        )

    def reactivate_fee_rate(self, fee_rate_id: UUID) -> Result[FeeRate]:
        work = self._work()

        def operation() -> FeeRate:
            rate = work.fee_rates.get(fee_rate_id)
            rate.reactivate(self._clock.now_utc())
            return rate

        return run_operation(
            work.uow, FEE_RATE_OPERATION, operation,
            log_event="fee_rate_reactivate",
            log_extra={"fee_rate_id": str(fee_rate_id)},
        )
