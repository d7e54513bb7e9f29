"""
fop_batch.domain -- Pure types and schedule math for the daily jobs.

ZERO I/O.
"""

from fop_batch.domain.schedule import local_today, next_run, seconds_until_next_run
from fop_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    BatchRunStatus,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchRunResult",
    "BatchRunStatus",
    "local_today",
    "next_run",
    "seconds_until_next_run",
]
