"""
Tests for the per-flight invoice ledger.

Validates:
- DRAFT -> PENDING -> PARTIALLY_PAID -> PAID, status derived from amounts
- balance_due = total_amount - amount_paid and never goes negative
- Overpayment, empty finalization and manual interest lines are refused
- Flight charges come from the fee schedule, with persisted rates taking priority
- Overdue interest is zero within grace and grows with days overdue
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

from fop_kernel.domain.values import Money, MtowTier, Weight
from fop_kernel.exceptions import InterestNotAllowedError, PaymentExceedsBalanceError
from fop_modules.revenue.fee_schedule import (
    DEFAULT_POLICY_SOURCE,
    FlightChargeRequest,
    RevenueFeeScheduleEngine,
    calculate_interest,
)
from fop_modules.revenue.models import (
    BviAirport,
    FeeCategory,
    Invoice,
    InvoiceStatus,
    OperationType,
)
from tests.conftest import TEST_OFFICER, TEST_OPERATOR_ID

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def invoice_data(**overrides) -> dict:
    """GA flight into TUPJ: 12,000 lbs, 8 seats."""
    data = dict(
        operator_id=TEST_OPERATOR_ID,
        arrival_airport="TUPJ",
        operation_type="GENERAL_AVIATION",
        flight_date=date(2026, 2, 1),
        mtow_value=Decimal("12000"),
        seat_count=8,
        passenger_count=8,
    )
    data.update(overrides)
    return data


def line_data(amount: str = "500", **overrides) -> dict:
    data = dict(
        category="LANDING",
        description="Landing Fee",
        quantity=Decimal("1"),
        unit_rate=Decimal(amount),
    )
    data.update(overrides)
    return data


@pytest.fixture
def make_invoice(revenue_service):
    """Create a DRAFT invoice with one line per amount given."""

    def _make(*amounts: str, **overrides):
        invoice = revenue_service.create_invoice(**invoice_data(**overrides)).unwrap()
        for amount in amounts:
            revenue_service.add_line_item(invoice.id, **line_data(amount)).unwrap()
        return revenue_service.get_invoice(invoice.id)

    return _make


@pytest.fixture
def make_finalized_invoice(revenue_service, make_invoice):
    def _make(*amounts: str, **overrides):
        invoice = make_invoice(*amounts, **overrides)
        revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()
        return revenue_service.get_invoice(invoice.id)

    return _make


def _pay(revenue_service, invoice_id, amount: str, method: str = "BANK_TRANSFER"):
    return revenue_service.record_payment(
        invoice_id, amount=Decimal(amount), method=method, recorded_by=TEST_OFFICER,
    )


# =============================================================================
# Lifecycle
# =============================================================================


class TestInvoiceLifecycle:
    def test_create_draft(self, revenue_service, make_invoice):
        invoice = make_invoice()

        assert invoice.status is InvoiceStatus.DRAFT
        assert invoice.invoice_number.startswith("BVIA-INV-20260115-")
        assert invoice.total_amount == Money.zero()
        assert invoice.mtow == Weight.pounds("12000")
        assert revenue_service.find_invoice_by_number(invoice.invoice_number).id == invoice.id

    def test_line_items_accumulate(self, make_invoice):
        invoice = make_invoice("500", "10")

        assert invoice.subtotal == Money.of("510")
        assert invoice.balance_due == Money.of("510")
        assert [li.display_order for li in invoice.line_items] == [1, 2]

    def test_finalize_sets_due_date(self, make_finalized_invoice):
        invoice = make_finalized_invoice("500")

        assert invoice.status is InvoiceStatus.PENDING
        assert invoice.finalized_by == TEST_OFFICER
        assert invoice.invoice_date == date(2026, 1, 15)
        assert invoice.due_date == date(2026, 1, 15) + timedelta(days=30)

    def test_finalize_dates_follow_local_calendar(
        self, revenue_service, make_invoice, deterministic_clock
    ):
        invoice = make_invoice("500")
        # 22:00 local (UTC-4) on the 15th
        deterministic_clock.set_time(datetime(2026, 1, 16, 2, 0, tzinfo=timezone.utc))

        revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()

        current = revenue_service.get_invoice(invoice.id)
        assert current.invoice_date == date(2026, 1, 15)
        assert current.due_date == date(2026, 2, 14)

    def test_partial_then_full_payment(self, revenue_service, make_finalized_invoice):
        invoice = make_finalized_invoice("500", "10")

        first = _pay(revenue_service, invoice.id, "200").unwrap()
        assert revenue_service.get_invoice(invoice.id).status is InvoiceStatus.PARTIALLY_PAID
        assert first.receipt_number.startswith("BVIA-RCP-")

        _pay(revenue_service, invoice.id, "310").unwrap()

        paid = revenue_service.get_invoice(invoice.id)
        assert paid.status is InvoiceStatus.PAID
        assert paid.amount_paid == Money.of("510")
        assert paid.balance_due == Money.zero()
        assert len(paid.payments) == 2

    def test_overpayment_refused(self, revenue_service, make_finalized_invoice):
        invoice = make_finalized_invoice("100")

        result = _pay(revenue_service, invoice.id, "100.01")

        assert result.error.code == "Payment.RecordError"
        assert result.error.cause_code == "Invoice.PaymentExceedsBalance"
        current = revenue_service.get_invoice(invoice.id)
        assert current.payments == ()
        assert current.status is InvoiceStatus.PENDING

    def test_payment_on_draft_refused(self, revenue_service, make_invoice):
        invoice = make_invoice("100")
        result = _pay(revenue_service, invoice.id, "50")
        assert result.error.cause_code == "Invoice.InvalidState"

    def test_paid_invoice_is_terminal(self, revenue_service, make_finalized_invoice):
        invoice = make_finalized_invoice("100")
        _pay(revenue_service, invoice.id, "100").unwrap()

        result = revenue_service.cancel(invoice.id, cancelled_by=TEST_OFFICER, reason="Duplicate")

        assert result.is_failure
        assert revenue_service.get_invoice(invoice.id).status is InvoiceStatus.PAID

    def test_finalize_without_lines_refused(self, revenue_service, make_invoice):
        invoice = make_invoice()

        result = revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER)

        assert result.error.code == "Invoice.FinalizeError"
        assert result.error.cause_code == "Invoice.CannotFinalize"

    def test_finalize_twice_refused(self, revenue_service, make_finalized_invoice):
        invoice = make_finalized_invoice("100")
        result = revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER)
        assert result.error.cause_code == "Invoice.InvalidState"

    def test_lines_locked_after_finalize(self, revenue_service, make_finalized_invoice):
        invoice = make_finalized_invoice("100")
        result = revenue_service.add_line_item(invoice.id, **line_data("5"))
        assert result.error.cause_code == "Invoice.InvalidState"

    def test_manual_interest_line_refused(self, revenue_service, make_invoice):
        invoice = make_invoice()
        result = revenue_service.add_line_item(
            invoice.id, **line_data("5", category="LATE_PAYMENT_INTEREST")
        )
        assert result.error.code == "Error.Validation"

    def test_remove_line_item(self, revenue_service, make_invoice):
        invoice = make_invoice("500", "10")

        revenue_service.remove_line_item(invoice.id, invoice.line_items[0].id).unwrap()

        current = revenue_service.get_invoice(invoice.id)
        assert [li.amount for li in current.line_items] == [Money.of("10")]

    def test_remove_unknown_line_item(self, revenue_service, make_invoice):
        invoice = make_invoice("500")
        result = revenue_service.remove_line_item(invoice.id, uuid4())
        assert result.error.cause_code == "Invoice.LineItemNotFound"

    def test_cancel_draft(self, revenue_service, make_invoice):
        invoice = make_invoice("500")

        revenue_service.cancel(invoice.id, cancelled_by=TEST_OFFICER, reason="Flight cancelled").unwrap()

        cancelled = revenue_service.get_invoice(invoice.id)
        assert cancelled.status is InvoiceStatus.CANCELLED
        assert cancelled.cancellation_reason == "Flight cancelled"

    def test_invalid_airport_rejected(self, revenue_service):
        result = revenue_service.create_invoice(**invoice_data(arrival_airport="TNCM"))
        assert result.error.code == "Error.Validation"

    def test_list_for_operator(self, revenue_service, make_invoice):
        first = make_invoice("1")
        second = make_invoice("2")
        other = make_invoice("3", operator_id=uuid4())

        listed = {i.id for i in revenue_service.list_invoices_for_operator(TEST_OPERATOR_ID)}

        assert listed == {first.id, second.id}
        assert other.id not in listed


# =============================================================================
# Pure aggregate
# =============================================================================


def _pure_invoice(*amounts: str) -> Invoice:
    invoice = Invoice.create(
        tenant_id="bvi",
        operator_id=uuid4(),
        arrival_airport=BviAirport.TUPJ,
        operation_type=OperationType.CHARTER,
        flight_date=date(2026, 2, 1),
        mtow=Weight.pounds("30000"),
        seat_count=20,
        today=NOW.date(),
        now=NOW,
    )
    for amount in amounts:
        invoice.add_line_item(FeeCategory.LANDING, "Landing Fee", Decimal("1"), None,
                              Money.of(amount), NOW)
    return invoice


class TestInvoiceAggregate:
    @hypothesis_settings(max_examples=50, deadline=None)
    @given(
        st.lists(
            st.decimals(min_value=Decimal("0.01"), max_value=Decimal("5000"), places=2),
            min_size=1,
            max_size=8,
        )
    )
    def test_balance_never_negative(self, payments):
        invoice = _pure_invoice("1000")
        invoice.finalize(TEST_OFFICER, NOW.date(), NOW)
        paid_so_far = Money.zero()

        for amount in payments:
            if invoice.status is InvoiceStatus.PAID:
                break
            money = Money.of(amount)
            if invoice.balance_due < money:
                with pytest.raises(PaymentExceedsBalanceError):
                    invoice.record_payment(money, "CASH", None, None, TEST_OFFICER, NOW)
                continue
            invoice.record_payment(money, "CASH", None, None, TEST_OFFICER, NOW)
            assert paid_so_far <= invoice.amount_paid
            paid_so_far = invoice.amount_paid

            assert invoice.balance_due.amount >= 0
            assert invoice.balance_due + invoice.amount_paid == invoice.total_amount

    def test_interest_requires_overdue(self):
        invoice = _pure_invoice("100")
        invoice.finalize(TEST_OFFICER, NOW.date(), NOW)

        with pytest.raises(InterestNotAllowedError):
            invoice.add_interest_charge(Money.of("1.50"), "Late Payment Interest", NOW)

    def test_interest_line_counted_separately(self):
        invoice = _pure_invoice("100")
        invoice.finalize(TEST_OFFICER, NOW.date(), NOW)
        later = NOW + timedelta(days=45)
        invoice.mark_overdue(later.date(), later)

        invoice.add_interest_charge(Money.of("1.50"), "Late Payment Interest", later)

        assert invoice.status is InvoiceStatus.OVERDUE
        assert invoice.subtotal == Money.of("100")
        assert invoice.total_interest == Money.of("1.50")
        assert invoice.balance_due == Money.of("101.50")
        assert invoice.last_interest_charge_at == later

    def test_partial_payment_keeps_overdue(self):
        invoice = _pure_invoice("100")
        invoice.finalize(TEST_OFFICER, NOW.date(), NOW)
        later = NOW + timedelta(days=45)
        invoice.mark_overdue(later.date(), later)

        invoice.record_payment(Money.of("40"), "CASH", None, None, TEST_OFFICER, later)

        assert invoice.status is InvoiceStatus.OVERDUE
        assert invoice.days_overdue(later.date()) == 15


# =============================================================================
# Flight charges
# =============================================================================


class TestFeeSchedule:
    @pytest.fixture
    def fee_engine(self):
        return RevenueFeeScheduleEngine()

    def test_general_aviation_breakdown(self, fee_engine):
        charges = fee_engine.calculate(FlightChargeRequest(
            mtow=Weight.pounds("12000"),
            operation_type=OperationType.GENERAL_AVIATION,
            airport=BviAirport.TUPJ,
            passenger_count=8,
        ))

        assert charges.mtow_tier is MtowTier.TIER1
        assert charges.landing_fee == Money.of("60")  # 12 x 1000 lbs at $5
        assert charges.navigation_fee == Money.of("5")
        assert [line.category for line in charges.lines] == [
            FeeCategory.LANDING,
            FeeCategory.NAVIGATION,
            FeeCategory.AIRPORT_DEVELOPMENT,
            FeeCategory.SECURITY,
            FeeCategory.HOLD_BAGGAGE_SCREENING,
        ]
        assert charges.total == Money.of("281")  # 60 + 5 + 120 + 40 + 56
        assert charges.policy_source == DEFAULT_POLICY_SOURCE

    def test_minimum_landing_fee(self, fee_engine):
        charges = fee_engine.calculate(FlightChargeRequest(
            mtow=Weight.pounds("3000"),
            operation_type=OperationType.GENERAL_AVIATION,
            airport=BviAirport.TUPW,
        ))
        assert charges.landing_fee == Money.of("20")
        assert charges.lines[0].description.endswith("minimum")

    def test_emergency_flights_exempt_from_landing(self, fee_engine):
        charges = fee_engine.calculate(FlightChargeRequest(
            mtow=Weight.pounds("50000"),
            operation_type=OperationType.EMERGENCY,
            airport=BviAirport.TUPJ,
        ))
        assert charges.landing_fee == Money.zero()
        assert charges.navigation_fee == Money.of("10")

    def test_optional_services(self, fee_engine):
        charges = fee_engine.calculate(FlightChargeRequest(
            mtow=Weight.pounds("12000"),
            operation_type=OperationType.CHARTER,
            airport=BviAirport.TUPJ,
            parking_hours=9,
            fuel_gallons=Decimal("100"),
            lighting_hours=2,
            operation_hour=23,
            include_flight_plan_filing=True,
            requires_cat_vi_fire=True,
        ))

        amounts = {line.category: line.amount for line in charges.lines}
        assert amounts[FeeCategory.PARKING] == Money.of("24")  # 2 blocks x 20% of 60
        assert amounts[FeeCategory.FUEL_FLOW] == Money.of("20")
        assert amounts[FeeCategory.LIGHTING] == Money.of("70")
        assert amounts[FeeCategory.EXTENDED_OPERATIONS] == Money.of("1650")
        assert amounts[FeeCategory.FLIGHT_PLAN_FILING] == Money.of("20")
        assert amounts[FeeCategory.CAT_VI_FIRE_UPGRADE] == Money.of("100")

    def test_interisland_airport_development(self, fee_engine):
        charges = fee_engine.calculate(FlightChargeRequest(
            mtow=Weight.pounds("8000"),
            operation_type=OperationType.INTERISLAND,
            airport=BviAirport.TUPY,
            passenger_count=2,
        ))
        development = next(
            line for line in charges.lines if line.category is FeeCategory.AIRPORT_DEVELOPMENT
        )
        assert development.amount == Money.of("10")

    def test_add_flight_charges_to_invoice(self, revenue_service, make_invoice):
        invoice = make_invoice()

        charges = revenue_service.add_flight_charges(invoice.id).unwrap()

        current = revenue_service.get_invoice(invoice.id)
        assert len(current.line_items) == len(charges.lines)
        assert current.total_amount == charges.total == Money.of("281")

    def test_persisted_rate_overrides_default(self, revenue_service):
        rate = revenue_service.create_fee_rate(
            category="LANDING",
            rate=Decimal("7"),
            effective_from=date(2026, 1, 1),
            operation_type="GENERAL_AVIATION",
            mtow_tier="TIER1",
        ).unwrap()
        request = FlightChargeRequest(
            mtow=Weight.pounds("12000"),
            operation_type=OperationType.GENERAL_AVIATION,
            airport=BviAirport.TUPJ,
        )

        charges = revenue_service.quote_flight_charges(request)

        assert charges.landing_fee == Money.of("84")
        assert charges.lines[0].fee_rate_id == rate.id
        assert charges.policy_source.startswith("Database Policy")

        revenue_service.deactivate_fee_rate(rate.id, effective_to=date(2026, 1, 14)).unwrap()
        assert revenue_service.quote_flight_charges(request).landing_fee == Money.of("60")

        revenue_service.reactivate_fee_rate(rate.id).unwrap()
        assert revenue_service.quote_flight_charges(request).landing_fee == Money.of("84")

    def test_negative_fee_rate_rejected(self, revenue_service):
        result = revenue_service.create_fee_rate(
            category="SECURITY", rate=Decimal("-1"), effective_from=date(2026, 1, 1),
        )
        assert result.error.code == "Error.Validation"

    def test_deactivate_inactive_rate_refused(self, revenue_service):
        rate = revenue_service.create_fee_rate(
            category="SECURITY", rate=Decimal("6"), effective_from=date(2026, 1, 1),
        ).unwrap()
        revenue_service.deactivate_fee_rate(rate.id, effective_to=date(2026, 1, 10)).unwrap()

        result = revenue_service.deactivate_fee_rate(rate.id, effective_to=date(2026, 1, 10))

        assert result.error.code == "FeeRate.InvalidOperation"
        assert result.error.cause_code == "FeeRate.Invalid"


# =============================================================================
# Interest
# =============================================================================


balances = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000000"), places=2)
# Above a dollar the day-31 and day-60 amounts are at least a cent apart
whole_balances = st.decimals(min_value=Decimal("1.00"), max_value=Decimal("1000000"), places=2)


class TestInterest:
    @given(balances)
    def test_zero_within_grace(self, amount):
        assert calculate_interest(Money.of(amount), 30) == Money.zero()

    @given(balances)
    def test_positive_after_grace(self, amount):
        assert calculate_interest(Money.of(amount), 31).is_positive

    @given(whole_balances)
    def test_grows_with_days_overdue(self, amount):
        balance = Money.of(amount)
        assert calculate_interest(balance, 31) < calculate_interest(balance, 60)

    @given(balances, st.integers(min_value=31, max_value=720))
    def test_never_decreases(self, amount, days):
        balance = Money.of(amount)
        assert calculate_interest(balance, days) <= calculate_interest(balance, days + 1)

    @pytest.mark.parametrize("amount", ["0.01", "0.25", "0.32"])
    def test_small_balance_rounds_up_to_a_cent(self, amount):
        assert calculate_interest(Money.of(amount), 31) == Money.of("0.01")

    def test_sixty_days_overdue(self):
        # two started periods: 1000 * (1.015^2 - 1)
        assert calculate_interest(Money.of("1000"), 60) == Money.of("30.23")

    def test_zero_balance(self):
        assert calculate_interest(Money.zero(), 365) == Money.zero()
