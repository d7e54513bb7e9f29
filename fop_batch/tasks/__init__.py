"""
fop_batch.tasks -- Task protocol and the two reconciliation tasks.
"""

from fop_batch.tasks.base import (
    BatchContext,
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
)

__all__ = [
    "BatchContext",
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
]
