"""
Module: fop_kernel.db.repository
Responsibility: Generic tenant-scoped repository mapping ORM rows to domain
    aggregates.  Module repositories subclass it, name their ORM model and
    add their own query methods.
Architecture position: Kernel > DB.  Knows the ORM model contract
    (``to_dto`` / ``from_dto`` / ``update_from``) but no concrete model.

Invariants enforced:
    - One aggregate instance per row per unit of work (identity cache).
    - Rows of other tenants are invisible: get() raises NotFoundError.
    - Every loaded or added aggregate is tracked by the unit of work, so
      its state is written back and its events drained at flush time.

Failure modes:
    - NotFoundError from get() for unknown or foreign-tenant identities.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, Iterable, Protocol, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from fop_kernel.exceptions import NotFoundError

if TYPE_CHECKING:
    from fop_kernel.services.unit_of_work import UnitOfWork


class AggregateModel(Protocol):
    id: Any
    tenant_id: str

    def to_dto(self) -> Any: ...

    def update_from(self, aggregate: Any) -> None: ...

    @classmethod
    def from_dto(cls, aggregate: Any, tenant_id: str) -> "AggregateModel": ...


A = TypeVar("A")
M = TypeVar("M")


class AggregateRepository(Generic[A, M]):
    """Base class for aggregate repositories."""

    model_cls: type
    entity_name: str = "Aggregate"

    def __init__(self, session: Session, tenant_id: str, uow: UnitOfWork | None = None):
        self._session = session
        self._tenant_id = tenant_id
        self._uow = uow
        self._aggregates: dict[UUID, A] = {}
        self._models: dict[UUID, M] = {}
        if uow is not None:
            uow.register_repository(self)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    # -- lookups -------------------------------------------------------------

    def find(self, aggregate_id: UUID) -> A | None:
        if aggregate_id in self._aggregates:
            return self._aggregates[aggregate_id]
        model = self._session.get(self.model_cls, aggregate_id)
        if model is None or model.tenant_id != self._tenant_id:
            return None
        return self._load(model)

    def get(self, aggregate_id: UUID) -> A:
        aggregate = self.find(aggregate_id)
        if aggregate is None:
            raise NotFoundError(self.entity_name, aggregate_id)
        return aggregate

    def _tenant_select(self) -> Select:
        return select(self.model_cls).where(self.model_cls.tenant_id == self._tenant_id)

    def _load_many(self, stmt: Select) -> list[A]:
        return [self._load(m) for m in self._session.execute(stmt).scalars().all()]

    def _load(self, model: M) -> A:
        key = model.id
        if key in self._aggregates:
            return self._aggregates[key]
        aggregate = model.to_dto()
        self._aggregates[key] = aggregate
        self._models[key] = model
        self._track(aggregate)
        return aggregate

    # -- writes --------------------------------------------------------------

    def add(self, aggregate: A) -> A:
        model = self.model_cls.from_dto(aggregate, self._tenant_id)
        self._session.add(model)
        self._aggregates[aggregate.id] = aggregate
        self._models[aggregate.id] = model
        self._track(aggregate)
        return aggregate

    def persist(self, aggregate: A) -> None:
        """Copy aggregate state onto its row.  Called by the unit of work."""
        model = self._models.get(aggregate.id)
        if model is None:
            model = self._session.get(self.model_cls, aggregate.id)
            if model is None:
                raise NotFoundError(self.entity_name, aggregate.id)
            self._models[aggregate.id] = model
        model.update_from(aggregate)

    def reset(self) -> None:
        """Forget cached aggregates, e.g. after a SAVEPOINT rollback."""
        self._aggregates.clear()
        self._models.clear()

    def cached(self) -> Iterable[A]:
        return tuple(self._aggregates.values())

    def _track(self, aggregate: A) -> None:
        if self._uow is not None:
            self._uow.track(aggregate, self)
