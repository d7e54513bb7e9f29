"""
fop_batch.domain.types -- Frozen result types for batch runs.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


class BatchRunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # No item failed
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed
    FAILED = "failed"  # Every item failed


class BatchItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Nothing to do, e.g. interest already charged this period


@dataclass(frozen=True)
class BatchItemResult:
    """Result of processing one item inside its own SAVEPOINT."""

    item_index: int
    item_key: str
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunResult:
    """
    Result of one complete run of a task.

    Returned by ``BatchExecutor.run()`` after the run committed.
    """

    task_type: str
    status: BatchRunStatus
    run_date: date
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    def results_with_status(self, status: BatchItemStatus) -> tuple[BatchItemResult, ...]:
        return tuple(r for r in self.item_results if r.status is status)
