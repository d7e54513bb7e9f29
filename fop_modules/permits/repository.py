"""Tenant-scoped permit repository with the expiry job's queries."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select

from fop_kernel.db.repository import AggregateRepository
from fop_modules.permits.models import Permit, PermitStatus
from fop_modules.permits.orm import PermitModel


class PermitRepository(AggregateRepository[Permit, PermitModel]):
    model_cls = PermitModel
    entity_name = "Permit"

    def find_by_number(self, permit_number: str) -> Permit | None:
        stmt = self._tenant_select().where(PermitModel.permit_number == permit_number)
        found = self._load_many(stmt)
        return found[0] if found else None

    def number_taken(self, permit_number: str) -> bool:
        """Permit numbers are unique across tenants."""
        stmt = select(PermitModel.id).where(PermitModel.permit_number == permit_number).limit(1)
        return self.session.execute(stmt).first() is not None

    def find_by_application(self, application_id: UUID) -> Permit | None:
        stmt = self._tenant_select().where(PermitModel.application_id == application_id)
        found = self._load_many(stmt)
        return found[0] if found else None

    def list_for_operator(self, operator_id: UUID) -> list[Permit]:
        stmt = (
            self._tenant_select()
            .where(PermitModel.operator_id == operator_id)
            .order_by(PermitModel.valid_until)
        )
        return self._load_many(stmt)

    def list_ids_active_expired_before(self, today: date) -> list[UUID]:
        stmt = (
            self._tenant_select()
            .with_only_columns(PermitModel.id)
            .where(PermitModel.status == PermitStatus.ACTIVE.value)
            .where(PermitModel.valid_until < today)
            .order_by(PermitModel.valid_until, PermitModel.permit_number)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_active_expiring_on(self, valid_until: date) -> list[Permit]:
        stmt = (
            self._tenant_select()
            .where(PermitModel.status == PermitStatus.ACTIVE.value)
            .where(PermitModel.valid_until == valid_until)
            .order_by(PermitModel.permit_number)
        )
        return self._load_many(stmt)
