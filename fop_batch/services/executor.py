"""
BatchExecutor -- SAVEPOINT-per-item execution of one reconciliation run.

Contract:
    ``run(task)`` opens a session and unit of work, lets the task prepare
    its items, executes each item inside its own SAVEPOINT and commits the
    whole run once at the end.  Domain events raised by the run are
    dispatched after that commit.

Invariants enforced:
    - A failed item is rolled back to its SAVEPOINT, logged and recorded;
      the remaining items still run.
    - Nothing is committed before the last item finished.
    - All timestamps come from the injected Clock.

Failure modes:
    - Exceptions from ``prepare_items`` or the final commit propagate after
      rollback; the runner logs them and backs off.
"""

from __future__ import annotations

import time
from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session

from fop_batch.domain.schedule import local_today
from fop_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    BatchRunStatus,
)
from fop_batch.tasks.base import BatchContext, BatchTask
from fop_kernel.domain.clock import Clock, SystemClock
from fop_kernel.exceptions import FopError
from fop_kernel.logging_config import LogContext, get_logger
from fop_kernel.services.event_dispatcher import EventDispatcher
from fop_kernel.services.unit_of_work import UnitOfWork

logger = get_logger("batch.executor")


class BatchExecutor:
    """
    Runs batch tasks against a fresh session per run.

    Non-goals:
        - No retries inside a run; a failed item waits for the next run.
        - No background threads; that is ``DailyJobRunner``'s job.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        tenant_id: str,
        clock: Clock | None = None,
        dispatcher: EventDispatcher | None = None,
        utc_offset_hours: int = 0,
    ):
        self._session_factory = session_factory
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._dispatcher = dispatcher
        self._utc_offset_hours = utc_offset_hours

    def run(self, task: BatchTask) -> BatchRunResult:
        """Run ``task`` once; every record logged meanwhile carries the run id."""
        with LogContext.bind(correlation_id=uuid4().hex, tenant_id=self._tenant_id, job=task.task_type):
            return self._run(task)

    def _run(self, task: BatchTask) -> BatchRunResult:
        start_time = time.monotonic()
        started_at = self._clock.now_utc()
        today = local_today(started_at, self._utc_offset_hours)
        logger.info(
            "batch_run_started",
            extra={"task_type": task.task_type, "run_date": today.isoformat()},
        )

        session = self._session_factory()
        try:
            uow = UnitOfWork(session, self._dispatcher)
            context = BatchContext(session, uow, self._tenant_id, started_at, today)
            items = task.prepare_items(context)
            item_results = [self._execute_item(task, item, context) for item in items]
            uow.save_changes()
        except Exception:
            session.rollback()
            logger.exception("batch_run_failed", extra={"task_type": task.task_type})
            raise
        finally:
            session.close()

        succeeded = sum(1 for r in item_results if r.status is BatchItemStatus.SUCCEEDED)
        failed = sum(1 for r in item_results if r.status is BatchItemStatus.FAILED)
        skipped = sum(1 for r in item_results if r.status is BatchItemStatus.SKIPPED)

        if failed == 0:
            status = BatchRunStatus.COMPLETED
        elif succeeded == 0 and skipped == 0:
            status = BatchRunStatus.FAILED
        else:
            status = BatchRunStatus.PARTIALLY_COMPLETED

        result = BatchRunResult(
            task_type=task.task_type,
            status=status,
            run_date=today,
            total_items=len(items),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            item_results=tuple(item_results),
            started_at=started_at,
            completed_at=self._clock.now_utc(),
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        logger.info(
            "batch_run_completed",
            extra={
                "task_type": task.task_type,
                "status": status.value,
                "total_items": result.total_items,
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def _execute_item(self, task: BatchTask, item, context: BatchContext) -> BatchItemResult:
        item_start = time.monotonic()
        checkpoint = context.uow.checkpoint()
        savepoint = context.session.begin_nested()
        try:
            outcome = task.execute_item(item, context)
            if outcome.status is BatchItemStatus.SUCCEEDED:
                context.uow.flush()
                savepoint.commit()
            else:
                savepoint.rollback()
                context.uow.restore(checkpoint)
        except Exception as exc:
            savepoint.rollback()
            context.uow.restore(checkpoint)
            error_code = exc.code if isinstance(exc, FopError) else "UNHANDLED_EXCEPTION"
            logger.warning(
                "batch_item_failed",
                extra={
                    "task_type": task.task_type,
                    "item_key": item.item_key,
                    "error_code": error_code,
                    "error_message": str(exc),
                },
                exc_info=not isinstance(exc, FopError),
            )
            return BatchItemResult(
                item_index=item.item_index,
                item_key=item.item_key,
                status=BatchItemStatus.FAILED,
                error_code=error_code,
                error_message=str(exc),
                duration_ms=int((time.monotonic() - item_start) * 1000),
            )

        return BatchItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=outcome.status,
            result_data=outcome.result_data,
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )
