"""Tenant-scoped repositories for invoices, account balances and fee rates."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fop_kernel.db.repository import AggregateRepository
from fop_modules.revenue.models import (
    FeeCategory,
    FeeRate,
    Invoice,
    InvoiceStatus,
    OperatorAccountBalance,
)
from fop_modules.revenue.orm import FeeRateModel, InvoiceModel, OperatorAccountBalanceModel

OPEN_STATUSES = (InvoiceStatus.PENDING.value, InvoiceStatus.PARTIALLY_PAID.value)


class InvoiceRepository(AggregateRepository[Invoice, InvoiceModel]):
    model_cls = InvoiceModel
    entity_name = "Invoice"

    def find_by_number(self, invoice_number: str) -> Invoice | None:
        stmt = self._tenant_select().where(InvoiceModel.invoice_number == invoice_number)
        found = self._load_many(stmt)
        return found[0] if found else None

    def list_for_operator(self, operator_id: UUID) -> list[Invoice]:
        stmt = (
            self._tenant_select()
            .where(InvoiceModel.operator_id == operator_id)
            .order_by(InvoiceModel.created_at)
        )
        return self._load_many(stmt)

    def list_for_application(self, application_id: UUID) -> list[Invoice]:
        stmt = self._tenant_select().where(InvoiceModel.application_id == application_id)
        return self._load_many(stmt)

    def list_ids_overdue(self) -> list[UUID]:
        stmt = (
            self._tenant_select()
            .with_only_columns(InvoiceModel.id)
            .where(InvoiceModel.status == InvoiceStatus.OVERDUE.value)
            .order_by(InvoiceModel.due_date, InvoiceModel.invoice_number)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_ids_past_due_unmarked(self, today: date) -> list[UUID]:
        stmt = (
            self._tenant_select()
            .with_only_columns(InvoiceModel.id)
            .where(InvoiceModel.status.in_(OPEN_STATUSES))
            .where(InvoiceModel.due_date < today)
            .order_by(InvoiceModel.due_date, InvoiceModel.invoice_number)
        )
        return list(self.session.execute(stmt).scalars().all())


class AccountBalanceRepository(
    AggregateRepository[OperatorAccountBalance, OperatorAccountBalanceModel]
):
    model_cls = OperatorAccountBalanceModel
    entity_name = "OperatorAccountBalance"

    def find_by_operator(self, operator_id: UUID) -> OperatorAccountBalance | None:
        for cached in self.cached():
            if cached.operator_id == operator_id:
                return cached
        stmt = self._tenant_select().where(
            OperatorAccountBalanceModel.operator_id == operator_id
        )
        found = self._load_many(stmt)
        return found[0] if found else None


class FeeRateRepository(AggregateRepository[FeeRate, FeeRateModel]):
    model_cls = FeeRateModel
    entity_name = "FeeRate"

    def list_active(self, category: FeeCategory | None = None) -> list[FeeRate]:
        stmt = self._tenant_select().where(FeeRateModel.is_active.is_(True))
        if category is not None:
            stmt = stmt.where(FeeRateModel.category == category.value)
        stmt = stmt.order_by(FeeRateModel.category, FeeRateModel.effective_from)
        return self._load_many(stmt)
