"""
BatchTask protocol and the per-run context handed to tasks.

Contract:
    ``BatchTask.prepare_items()`` selects the work for a run and returns
    immutable item inputs.  ``BatchTask.execute_item()`` processes ONE item
    inside the SAVEPOINT the executor opened for it.

Non-goals:
    - Tasks do not commit, roll back or retry; the executor owns that.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy.orm import Session

from fop_batch.domain.types import BatchItemStatus
from fop_kernel.services.unit_of_work import UnitOfWork

R = TypeVar("R")


@dataclass(frozen=True)
class BatchItemInput:
    """One unit of work, created by ``BatchTask.prepare_items()``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    status: BatchItemStatus
    result_data: dict[str, Any] | None = None

    @classmethod
    def succeeded(cls, **result_data: Any) -> BatchTaskResult:
        return cls(BatchItemStatus.SUCCEEDED, result_data or None)

    @classmethod
    def skipped(cls, reason: str) -> BatchTaskResult:
        return cls(BatchItemStatus.SKIPPED, {"reason": reason})


class BatchContext:
    """
    Everything a task needs for one run.

    ``now`` is the UTC instant the run started; ``today`` is the local
    calendar date in the configured offset.  Repositories are created once
    per run and bound to the run's unit of work.
    """

    def __init__(
        self,
        session: Session,
        uow: UnitOfWork,
        tenant_id: str,
        now: datetime,
        today: date,
    ):
        self.session = session
        self.uow = uow
        self.tenant_id = tenant_id
        self.now = now
        self.today = today
        self._repositories: dict[type, Any] = {}

    def repository(self, repository_cls: type[R]) -> R:
        repository = self._repositories.get(repository_cls)
        if repository is None:
            repository = repository_cls(self.session, self.tenant_id, self.uow)
            self._repositories[repository_cls] = repository
        return repository


@runtime_checkable
class BatchTask(Protocol):
    """Interface every reconciliation task implements."""

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(self, context: BatchContext) -> tuple[BatchItemInput, ...]:
        """Select the items for this run, in processing order."""
        ...

    def execute_item(self, item: BatchItemInput, context: BatchContext) -> BatchTaskResult:
        """Process one item.  Raise to fail it; the executor rolls it back."""
        ...
