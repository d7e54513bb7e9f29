"""Tenant-scoped repositories for applications and fee configurations."""

from __future__ import annotations

from uuid import UUID

from fop_kernel.db.repository import AggregateRepository
from fop_modules.applications.models import Application, FeeConfiguration
from fop_modules.applications.orm import ApplicationModel, FeeConfigurationModel


class ApplicationRepository(AggregateRepository[Application, ApplicationModel]):
    model_cls = ApplicationModel
    entity_name = "Application"

    def find_by_number(self, application_number: str) -> Application | None:
        stmt = self._tenant_select().where(
            ApplicationModel.application_number == application_number
        )
        found = self._load_many(stmt)
        return found[0] if found else None

    def list_for_operator(self, operator_id: UUID) -> list[Application]:
        stmt = (
            self._tenant_select()
            .where(ApplicationModel.operator_id == operator_id)
            .order_by(ApplicationModel.created_at)
        )
        return self._load_many(stmt)


class FeeConfigurationRepository(AggregateRepository[FeeConfiguration, FeeConfigurationModel]):
    model_cls = FeeConfigurationModel
    entity_name = "FeeConfiguration"

    def list_active(self) -> list[FeeConfiguration]:
        stmt = (
            self._tenant_select()
            .where(FeeConfigurationModel.is_active.is_(True))
            .order_by(FeeConfigurationModel.updated_at.desc())
        )
        return self._load_many(stmt)
