"""
Tests for operator account balance bookkeeping.

Validates:
- Finalizing an invoice adds its total to the operator's running balance
- Overdue exposure moves with the overdue job, payments and cancellation
- A partial payment on an overdue invoice keeps it counted as overdue
- Eligibility reasons name the debt and the overdue invoice count
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from fop_batch.jobs import build_executor, build_overdue_task
from fop_kernel.domain.values import Money
from fop_kernel.exceptions import AccountBalanceError, NegativeOverdueError
from fop_modules.revenue.models import EligibilityPolicy, InvoiceStatus, OperatorAccountBalance
from tests.conftest import TEST_OFFICER, TEST_OPERATOR_ID

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
# Invoices finalized on 2026-01-15 fall due on 2026-02-14.
FIFTEEN_DAYS_OVERDUE = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def finalized_invoice(revenue_service):
    def _make(amount: str = "100", operator_id=TEST_OPERATOR_ID):
        invoice = revenue_service.create_invoice(
            operator_id=operator_id,
            arrival_airport="TUPJ",
            operation_type="CHARTER",
            flight_date=date(2026, 2, 1),
            mtow_value=Decimal("30000"),
            seat_count=12,
        ).unwrap()
        revenue_service.add_line_item(
            invoice.id, category="LANDING", description="Landing Fee",
            quantity=Decimal("1"), unit_rate=Decimal(amount),
        ).unwrap()
        revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()
        return invoice

    return _make


@pytest.fixture
def run_overdue_job(session_factory, settings, deterministic_clock, dispatcher):
    """Run the overdue job at ``when``."""

    def _run(when: datetime):
        deterministic_clock.set_time(when)
        executor = build_executor(session_factory, settings, deterministic_clock, dispatcher)
        return executor.run(build_overdue_task(settings))

    return _run


def _pay(revenue_service, invoice_id, amount: str):
    return revenue_service.record_payment(
        invoice_id, amount=Decimal(amount), method="WIRE_TRANSFER", recorded_by=TEST_OFFICER,
    ).unwrap()


class TestBookkeeping:
    def test_balance_created_with_first_invoice(self, revenue_service):
        assert revenue_service.get_account_balance(TEST_OPERATOR_ID) is None

        revenue_service.create_invoice(
            operator_id=TEST_OPERATOR_ID, arrival_airport="TUPJ",
            operation_type="CHARTER", flight_date=NOW.date(),
            mtow_value=Decimal("30000"), seat_count=12,
        ).unwrap()

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.current_balance == Money.zero()
        assert balance.invoice_count == 0

    def test_finalize_adds_to_balance(self, revenue_service, finalized_invoice):
        finalized_invoice("100")
        finalized_invoice("250")

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)

        assert balance.total_invoiced == Money.of("350")
        assert balance.current_balance == Money.of("350")
        assert balance.invoice_count == 2
        assert balance.last_invoice_at == NOW

    def test_payment_reduces_balance(self, revenue_service, finalized_invoice):
        invoice = finalized_invoice("100")

        _pay(revenue_service, invoice.id, "100")

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.total_paid == Money.of("100")
        assert balance.current_balance == Money.zero()
        assert balance.paid_invoice_count == 1

    def test_overdue_job_records_exposure(
        self, revenue_service, finalized_invoice, run_overdue_job
    ):
        invoice = finalized_invoice("100")

        run_overdue_job(FIFTEEN_DAYS_OVERDUE)

        assert revenue_service.get_invoice(invoice.id).status is InvoiceStatus.OVERDUE
        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.total_overdue == Money.of("100")
        assert balance.overdue_invoice_count == 1
        assert balance.has_overdue_debt

    def test_partial_then_full_payment_on_overdue_invoice(
        self, revenue_service, finalized_invoice, run_overdue_job
    ):
        invoice = finalized_invoice("100")
        run_overdue_job(FIFTEEN_DAYS_OVERDUE)

        _pay(revenue_service, invoice.id, "40")
        partial = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert partial.total_overdue == Money.of("60")
        assert partial.overdue_invoice_count == 1
        assert revenue_service.get_invoice(invoice.id).status is InvoiceStatus.OVERDUE

        _pay(revenue_service, invoice.id, "60")
        settled = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert settled.total_overdue == Money.zero()
        assert settled.overdue_invoice_count == 0
        assert settled.current_balance == Money.zero()
        assert revenue_service.get_invoice(invoice.id).status is InvoiceStatus.PAID

    def test_cancel_finalized_invoice_writes_off(self, revenue_service, finalized_invoice):
        keep = finalized_invoice("250")
        cancel = finalized_invoice("100")
        _pay(revenue_service, cancel.id, "30")

        revenue_service.cancel(cancel.id, cancelled_by=TEST_OFFICER, reason="Billing error").unwrap()

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.current_balance == Money.of("250")
        assert balance.invoice_count == 1
        assert revenue_service.get_invoice(keep.id).status is InvoiceStatus.PENDING

    def test_cancel_overdue_invoice_clears_exposure(
        self, revenue_service, finalized_invoice, run_overdue_job
    ):
        invoice = finalized_invoice("100")
        run_overdue_job(FIFTEEN_DAYS_OVERDUE)

        revenue_service.cancel(invoice.id, cancelled_by=TEST_OFFICER, reason="Disputed").unwrap()

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.total_overdue == Money.zero()
        assert balance.overdue_invoice_count == 0
        assert balance.current_balance == Money.zero()

    def test_cancel_draft_leaves_balance(self, revenue_service):
        invoice = revenue_service.create_invoice(
            operator_id=TEST_OPERATOR_ID, arrival_airport="TUPW",
            operation_type="GENERAL_AVIATION", flight_date=NOW.date(),
            mtow_value=Decimal("3000"), seat_count=4,
        ).unwrap()

        revenue_service.cancel(invoice.id, cancelled_by=TEST_OFFICER, reason="Not flown").unwrap()

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.current_balance == Money.zero()
        assert balance.invoice_count == 0


class TestEligibility:
    def test_unknown_operator_is_eligible(self, revenue_service):
        decision = revenue_service.check_eligibility(uuid4())
        assert decision.eligible
        assert decision.reasons == ()

    def test_unpaid_but_not_overdue_is_eligible(self, revenue_service, finalized_invoice):
        finalized_invoice("100")
        assert revenue_service.check_eligibility(TEST_OPERATOR_ID).eligible
        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.has_outstanding_debt
        assert not balance.has_overdue_debt

    def test_overdue_debt_blocks(self, revenue_service, finalized_invoice, run_overdue_job):
        finalized_invoice("100")
        run_overdue_job(FIFTEEN_DAYS_OVERDUE)

        decision = revenue_service.check_eligibility(TEST_OPERATOR_ID)

        assert not decision.eligible
        assert decision.outstanding == Money.of("100")
        assert decision.reasons == (
            "Outstanding BVIAA debt: 100.00 USD",
            "Overdue invoices: 1",
        )


class TestAccountBalanceAggregate:
    def _balance(self) -> OperatorAccountBalance:
        return OperatorAccountBalance.create(tenant_id="bvi", operator_id=uuid4(), now=NOW)

    def test_clearing_more_than_overdue_refused(self):
        balance = self._balance()
        balance.record_invoice_finalized(Money.of("50"), NOW)
        balance.record_invoice_overdue(Money.of("50"), NOW)

        with pytest.raises(NegativeOverdueError):
            balance.record_overdue_cleared(Money.of("50.01"), NOW)

        assert balance.total_overdue == Money.of("50")

    def test_payment_above_balance_refused(self):
        balance = self._balance()
        balance.record_invoice_finalized(Money.of("50"), NOW)

        with pytest.raises(AccountBalanceError):
            balance.record_payment(Money.of("60"), NOW)

    def test_interest_counts_as_overdue(self):
        balance = self._balance()
        balance.record_invoice_finalized(Money.of("100"), NOW)
        balance.record_invoice_overdue(Money.of("100"), NOW)

        balance.record_interest_charge(Money.of("1.52"), NOW)

        assert balance.total_interest == Money.of("1.52")
        assert balance.total_overdue == Money.of("101.52")
        assert balance.current_balance == Money.of("101.52")

    def test_policy_allows_threshold(self):
        balance = self._balance()
        balance.record_invoice_finalized(Money.of("100"), NOW)
        balance.record_invoice_overdue(Money.of("100"), NOW)

        lenient = EligibilityPolicy(max_overdue_amount=Decimal("100"), max_overdue_invoices=1)

        assert balance.eligibility(lenient).eligible
        assert not balance.is_eligible
