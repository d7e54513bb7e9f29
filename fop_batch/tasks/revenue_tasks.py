"""
Batch task: overdue invoices and late-payment interest.

Runs daily, one hour after the expiry job.  Two phases, one run:

1. Mark every finalized, unpaid invoice past its due date OVERDUE and add
   its balance to the operator's overdue exposure.
2. For every OVERDUE invoice beyond the grace period, append one interest
   line, unless the last interest line is younger than one accrual period.

Re-running on the same day changes nothing: phase 1 only selects invoices
not yet OVERDUE, and phase 2 finds this run's interest line.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from fop_batch.tasks.base import BatchContext, BatchItemInput, BatchTaskResult
from fop_kernel.logging_config import get_logger
from fop_modules.revenue.balances import BalanceBookkeeper
from fop_modules.revenue.fee_schedule import (
    INTEREST_GRACE_DAYS,
    INTEREST_PERIOD_DAYS,
    MONTHLY_INTEREST_RATE,
    calculate_interest,
)
from fop_modules.revenue.models import InvoiceStatus
from fop_modules.revenue.repository import AccountBalanceRepository, InvoiceRepository

logger = get_logger("batch.tasks.revenue")

MARK_OVERDUE = "mark_overdue"
CHARGE_INTEREST = "charge_interest"


class InvoiceOverdueTask:
    """Marks past-due invoices OVERDUE and accrues late-payment interest."""

    def __init__(
        self,
        *,
        monthly_rate: Decimal = MONTHLY_INTEREST_RATE,
        grace_days: int = INTEREST_GRACE_DAYS,
        period_days: int = INTEREST_PERIOD_DAYS,
    ):
        self._monthly_rate = monthly_rate
        self._grace_days = grace_days
        self._period_days = period_days

    @property
    def task_type(self) -> str:
        return "revenue.overdue_interest"

    @property
    def description(self) -> str:
        return "Mark overdue invoices and charge late-payment interest"

    def prepare_items(self, context: BatchContext) -> tuple[BatchItemInput, ...]:
        invoices = context.repository(InvoiceRepository)
        to_mark = invoices.list_ids_past_due_unmarked(context.today)
        # Invoices marked in phase 1 are interest candidates too.
        to_charge = list(dict.fromkeys([*invoices.list_ids_overdue(), *to_mark]))

        items = [
            BatchItemInput(
                item_index=i,
                item_key=f"{MARK_OVERDUE}:{invoice_id}",
                payload={"action": MARK_OVERDUE, "invoice_id": str(invoice_id)},
            )
            for i, invoice_id in enumerate(to_mark)
        ]
        items.extend(
            BatchItemInput(
                item_index=len(to_mark) + i,
                item_key=f"{CHARGE_INTEREST}:{invoice_id}",
                payload={"action": CHARGE_INTEREST, "invoice_id": str(invoice_id)},
            )
            for i, invoice_id in enumerate(to_charge)
        )
        logger.info(
            "overdue_items_prepared",
            extra={
                "today": context.today.isoformat(),
                "to_mark": len(to_mark),
                "to_charge": len(to_charge),
            },
        )
        return tuple(items)

    def execute_item(self, item: BatchItemInput, context: BatchContext) -> BatchTaskResult:
        invoice = context.repository(InvoiceRepository).get(UUID(item.payload["invoice_id"]))
        bookkeeper = BalanceBookkeeper(context.repository(AccountBalanceRepository))

        if item.payload["action"] == MARK_OVERDUE:
            invoice.mark_overdue(context.today, context.now)
            bookkeeper.invoice_overdue(invoice, context.now)
            logger.info(
                "invoice_marked_overdue",
                extra={
                    "invoice_number": invoice.invoice_number,
                    "balance_due": str(invoice.balance_due),
                },
            )
            return BatchTaskResult.succeeded(invoice_number=invoice.invoice_number)

        return self._charge_interest(invoice, bookkeeper, context)

    def _charge_interest(self, invoice, bookkeeper: BalanceBookkeeper, context: BatchContext) -> BatchTaskResult:
        if invoice.status is not InvoiceStatus.OVERDUE:
            return BatchTaskResult.skipped(f"invoice is {invoice.status.value}")
        days_overdue = invoice.days_overdue(context.today)
        if days_overdue <= self._grace_days:
            return BatchTaskResult.skipped("within grace period")
        last_charge = invoice.last_interest_charge_at
        if last_charge is not None and context.now - last_charge < timedelta(days=self._period_days):
            return BatchTaskResult.skipped("interest already charged this period")

        interest = calculate_interest(
            invoice.balance_due,
            days_overdue,
            monthly_rate=self._monthly_rate,
            grace_days=self._grace_days,
            period_days=self._period_days,
        )
        if not interest.is_positive:
            return BatchTaskResult.skipped("no interest due")

        invoice.add_interest_charge(
            interest, f"Late payment interest ({days_overdue} days overdue)", context.now
        )
        bookkeeper.interest_charged(invoice, interest, context.now)
        logger.info(
            "interest_charged",
            extra={
                "invoice_number": invoice.invoice_number,
                "amount": str(interest),
                "days_overdue": days_overdue,
            },
        )
        return BatchTaskResult.succeeded(
            invoice_number=invoice.invoice_number, interest=str(interest.amount)
        )
