"""
Batch task: permit expiry and expiry warnings.

Runs daily at local midnight.  Two phases, one run:

1. Expire every ACTIVE permit whose ``valid_until`` is before today.
2. For each warning threshold, queue one ``PermitExpiryWarningDue`` per
   ACTIVE permit expiring exactly that many days from today.

The exact-day match means a skipped run skips that day's warnings; there
is no catch-up.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable
from uuid import UUID

from fop_batch.tasks.base import BatchContext, BatchItemInput, BatchTaskResult
from fop_kernel.logging_config import get_logger
from fop_modules.permits.events import PermitExpiryWarningDue
from fop_modules.permits.models import PermitStatus
from fop_modules.permits.repository import PermitRepository

logger = get_logger("batch.tasks.permits")

EXPIRE = "expire"
WARN = "warn"


class PermitExpiryTask:
    """Expires lapsed permits and queues threshold expiry warnings."""

    def __init__(self, warning_thresholds: Iterable[int] = (30, 14, 7, 1)):
        self._thresholds = tuple(sorted(set(warning_thresholds), reverse=True))

    @property
    def task_type(self) -> str:
        return "permits.expiry"

    @property
    def description(self) -> str:
        return "Expire lapsed permits and send expiry warnings"

    @property
    def warning_thresholds(self) -> tuple[int, ...]:
        return self._thresholds

    def prepare_items(self, context: BatchContext) -> tuple[BatchItemInput, ...]:
        permits = context.repository(PermitRepository)
        items: list[BatchItemInput] = []

        for permit_id in permits.list_ids_active_expired_before(context.today):
            items.append(BatchItemInput(
                item_index=len(items),
                item_key=f"{EXPIRE}:{permit_id}",
                payload={"action": EXPIRE, "permit_id": str(permit_id)},
            ))

        for days in self._thresholds:
            for permit in permits.list_active_expiring_on(context.today + timedelta(days=days)):
                items.append(BatchItemInput(
                    item_index=len(items),
                    item_key=f"{WARN}:{permit.id}:{days}",
                    payload={"action": WARN, "permit_id": str(permit.id), "days": days},
                ))

        logger.info(
            "permit_expiry_items_prepared",
            extra={"today": context.today.isoformat(), "item_count": len(items)},
        )
        return tuple(items)

    def execute_item(self, item: BatchItemInput, context: BatchContext) -> BatchTaskResult:
        permit = context.repository(PermitRepository).get(UUID(item.payload["permit_id"]))

        if item.payload["action"] == EXPIRE:
            permit.expire(context.today, context.now)
            logger.info("permit_expired", extra={"permit_number": permit.permit_number})
            return BatchTaskResult.succeeded(permit_number=permit.permit_number)

        if permit.status is not PermitStatus.ACTIVE:
            return BatchTaskResult.skipped(f"permit is {permit.status.value}")
        days = int(item.payload["days"])
        context.uow.collect(PermitExpiryWarningDue(
            occurred_at=context.now,
            permit_id=permit.id,
            permit_number=permit.permit_number,
            operator_id=permit.operator_id,
            application_id=permit.application_id,
            valid_until=permit.valid_until,
            days_remaining=days,
        ))
        logger.info(
            "permit_expiry_warning_queued",
            extra={"permit_number": permit.permit_number, "days_remaining": days},
        )
        return BatchTaskResult.succeeded(permit_number=permit.permit_number, days_remaining=days)
