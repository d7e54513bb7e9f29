"""
Operator account balance bookkeeping.

Translates invoice ledger facts into ``OperatorAccountBalance`` mutations.
The revenue service and the overdue batch task both go through here so the
balance moves the same way whether an invoice changed interactively or in
the nightly run.  Every call happens in the caller's unit of work, never in
a post-commit handler.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fop_kernel.domain.values import Currency, Money
from fop_kernel.logging_config import get_logger
from fop_modules.revenue.models import Invoice, OperatorAccountBalance
from fop_modules.revenue.repository import AccountBalanceRepository

logger = get_logger("modules.revenue.balances")


class BalanceBookkeeper:
    """Applies invoice events to the owning operator's running balance."""

    def __init__(self, balances: AccountBalanceRepository):
        self._balances = balances

    def get_or_create(
        self, operator_id: UUID, now: datetime, currency: Currency = Currency.USD
    ) -> OperatorAccountBalance:
        balance = self._balances.find_by_operator(operator_id)
        if balance is None:
            balance = OperatorAccountBalance.create(
                tenant_id=self._balances.tenant_id,
                operator_id=operator_id,
                now=now,
                currency=currency,
            )
            self._balances.add(balance)
            logger.info("account_balance_created", extra={"operator_id": str(operator_id)})
        return balance

    def _for(self, invoice: Invoice, now: datetime) -> OperatorAccountBalance:
        return self.get_or_create(invoice.operator_id, now, invoice.currency)

    def invoice_finalized(self, invoice: Invoice, now: datetime) -> None:
        self._for(invoice, now).record_invoice_finalized(invoice.total_amount, now)

    def payment_recorded(
        self,
        invoice: Invoice,
        amount: Money,
        previous_balance_due: Money,
        was_overdue: bool,
        now: datetime,
    ) -> None:
        """
        A full payment of an overdue invoice clears what was still overdue
        and drops the invoice from the overdue count; a partial one only
        reduces the overdue amount.
        """
        balance = self._for(invoice, now)
        balance.record_payment(amount, now)
        settled = invoice.balance_due.is_zero
        if was_overdue:
            cleared = previous_balance_due if settled else amount
            balance.record_overdue_cleared(cleared, now, invoice_settled=settled)
        if settled:
            balance.record_invoice_paid(now)

    def invoice_overdue(self, invoice: Invoice, now: datetime) -> None:
        self._for(invoice, now).record_invoice_overdue(invoice.balance_due, now)

    def interest_charged(self, invoice: Invoice, amount: Money, now: datetime) -> None:
        self._for(invoice, now).record_interest_charge(amount, now)

    def invoice_cancelled(
        self,
        invoice: Invoice,
        outstanding: Money,
        was_finalized: bool,
        was_overdue: bool,
        now: datetime,
    ) -> None:
        if not was_finalized:
            return
        balance = self._for(invoice, now)
        balance.record_invoice_cancelled(outstanding, now)
        if was_overdue:
            balance.record_overdue_cleared(outstanding, now, invoice_settled=True)
