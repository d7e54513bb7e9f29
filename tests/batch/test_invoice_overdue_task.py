"""
Tests for fop_batch.tasks.revenue_tasks.InvoiceOverdueTask.

Validates:
- Past-due invoices are marked OVERDUE and counted in the account balance
- Interest is charged only beyond the grace period, at most once per period
- Re-running on the same day changes nothing
- An invoice marked in a run is an interest candidate in that same run
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fop_batch.domain.types import BatchItemStatus, BatchRunStatus
from fop_batch.jobs import build_executor, build_overdue_task
from fop_kernel.domain.values import Money
from fop_modules.revenue.fee_schedule import calculate_interest
from fop_modules.revenue.models import InvoiceStatus
from tests.conftest import TEST_OFFICER, TEST_OPERATOR_ID


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# Finalized 2026-01-15, due 2026-02-14.
DAY_15 = utc(2026, 3, 1, 12, 0)
DAY_34 = utc(2026, 3, 20, 12, 0)
DAY_64 = utc(2026, 4, 19, 12, 0)


@pytest.fixture
def finalized_invoice(revenue_service):
    invoice = revenue_service.create_invoice(
        operator_id=TEST_OPERATOR_ID,
        arrival_airport="TUPJ",
        operation_type="CHARTER",
        flight_date=date(2026, 2, 1),
        mtow_value=Decimal("60000"),
        seat_count=30,
    ).unwrap()
    revenue_service.add_line_item(
        invoice.id, category="LANDING", description="Landing Fee",
        quantity=Decimal("1"), unit_rate=Decimal("1000"),
    ).unwrap()
    return revenue_service.finalize(invoice.id, finalized_by=TEST_OFFICER).unwrap()


@pytest.fixture
def run_overdue(session_factory, settings, deterministic_clock, dispatcher):
    def _run(when: datetime):
        deterministic_clock.set_time(when)
        executor = build_executor(session_factory, settings, deterministic_clock, dispatcher)
        return executor.run(build_overdue_task(settings))

    return _run


def _skip_reasons(result) -> list[str]:
    return [r.result_data["reason"] for r in result.results_with_status(BatchItemStatus.SKIPPED)]


class TestMarkOverdue:
    def test_not_yet_due(self, run_overdue, revenue_service, finalized_invoice):
        result = run_overdue(utc(2026, 2, 14, 12, 0))

        assert result.total_items == 0
        assert revenue_service.get_invoice(finalized_invoice.id).status is InvoiceStatus.PENDING

    def test_marked_within_grace(self, run_overdue, revenue_service, finalized_invoice):
        result = run_overdue(DAY_15)

        assert result.status is BatchRunStatus.COMPLETED
        assert (result.succeeded, result.skipped) == (1, 1)
        assert _skip_reasons(result) == ["within grace period"]
        invoice = revenue_service.get_invoice(finalized_invoice.id)
        assert invoice.status is InvoiceStatus.OVERDUE
        assert invoice.total_interest == Money.zero()
        assert revenue_service.get_account_balance(TEST_OPERATOR_ID).total_overdue == Money.of("1000")

    def test_paid_invoice_ignored(self, run_overdue, revenue_service, finalized_invoice):
        revenue_service.record_payment(
            finalized_invoice.id, amount=Decimal("1000"), method="CASH", recorded_by=TEST_OFFICER,
        ).unwrap()

        assert run_overdue(DAY_34).total_items == 0

    def test_partially_paid_invoice_marked(self, run_overdue, revenue_service, finalized_invoice):
        revenue_service.record_payment(
            finalized_invoice.id, amount=Decimal("400"), method="CASH", recorded_by=TEST_OFFICER,
        ).unwrap()

        run_overdue(DAY_15)

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.total_overdue == Money.of("600")
        assert balance.overdue_invoice_count == 1


class TestInterest:
    def test_charged_beyond_grace(self, run_overdue, revenue_service, finalized_invoice):
        run_overdue(DAY_15)

        result = run_overdue(DAY_34)

        expected = calculate_interest(Money.of("1000"), 34)
        invoice = revenue_service.get_invoice(finalized_invoice.id)
        assert result.succeeded == 1
        assert invoice.total_interest == expected
        assert invoice.balance_due == Money.of("1000") + expected
        interest_line = invoice.line_items[-1]
        assert interest_line.is_interest_charge
        assert interest_line.description == "Late payment interest (34 days overdue)"

        balance = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert balance.total_interest == expected
        assert balance.total_overdue == Money.of("1000") + expected
        assert balance.current_balance == Money.of("1000") + expected

    def test_same_day_rerun_changes_nothing(self, run_overdue, revenue_service, finalized_invoice):
        run_overdue(DAY_15)
        run_overdue(DAY_34)
        before = revenue_service.get_account_balance(TEST_OPERATOR_ID)

        result = run_overdue(utc(2026, 3, 20, 18, 0))

        assert _skip_reasons(result) == ["interest already charged this period"]
        invoice = revenue_service.get_invoice(finalized_invoice.id)
        assert sum(1 for li in invoice.line_items if li.is_interest_charge) == 1
        after = revenue_service.get_account_balance(TEST_OPERATOR_ID)
        assert after.total_overdue == before.total_overdue
        assert after.total_interest == before.total_interest

    def test_charged_again_next_period(self, run_overdue, revenue_service, finalized_invoice):
        run_overdue(DAY_15)
        run_overdue(DAY_34)
        first = revenue_service.get_invoice(finalized_invoice.id).total_interest

        run_overdue(DAY_64)

        invoice = revenue_service.get_invoice(finalized_invoice.id)
        second = calculate_interest(Money.of("1000") + first, 64)
        assert invoice.total_interest == first + second

    def test_marked_and_charged_in_one_run(self, run_overdue, revenue_service, finalized_invoice):
        result = run_overdue(DAY_64)

        assert result.succeeded == 2
        invoice = revenue_service.get_invoice(finalized_invoice.id)
        assert invoice.status is InvoiceStatus.OVERDUE
        assert invoice.total_interest == calculate_interest(Money.of("1000"), 64)

    def test_overdue_blocks_permit_eligibility(self, run_overdue, revenue_service, finalized_invoice):
        run_overdue(DAY_15)

        decision = revenue_service.check_eligibility(TEST_OPERATOR_ID)

        assert not decision.eligible
        assert decision.outstanding == Money.of("1000")
