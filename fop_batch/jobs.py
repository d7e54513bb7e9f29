"""
Wiring for the two daily reconciliation jobs.

``build_runners`` is what ``scripts/run_jobs.py`` starts; the task and
executor builders are used on their own by tests and ``--once`` runs.
"""

from __future__ import annotations

import threading
from typing import Callable

from sqlalchemy.orm import Session

from fop_batch.domain.types import BatchRunResult
from fop_batch.services.executor import BatchExecutor
from fop_batch.services.runner import DailyJobRunner
from fop_batch.tasks.permit_tasks import PermitExpiryTask
from fop_batch.tasks.revenue_tasks import InvoiceOverdueTask
from fop_config.schema import FopSettings
from fop_kernel.domain.clock import Clock, SystemClock
from fop_kernel.services.event_dispatcher import EventDispatcher

EXPIRY_JOB = "permit-expiry"
OVERDUE_JOB = "invoice-overdue"


def build_expiry_task(settings: FopSettings) -> PermitExpiryTask:
    return PermitExpiryTask(settings.scheduling.expiry_warning_thresholds)


def build_overdue_task(settings: FopSettings) -> InvoiceOverdueTask:
    revenue = settings.revenue
    return InvoiceOverdueTask(
        monthly_rate=revenue.monthly_interest_rate,
        grace_days=revenue.interest_grace_days,
        period_days=revenue.interest_accrual_period_days,
    )


def build_executor(
    session_factory: Callable[[], Session],
    settings: FopSettings,
    clock: Clock | None = None,
    dispatcher: EventDispatcher | None = None,
) -> BatchExecutor:
    return BatchExecutor(
        session_factory,
        settings.tenant_id,
        clock=clock,
        dispatcher=dispatcher,
        utc_offset_hours=settings.scheduling.utc_offset_hours,
    )


def run_all_once(
    session_factory: Callable[[], Session],
    settings: FopSettings,
    clock: Clock | None = None,
    dispatcher: EventDispatcher | None = None,
) -> list[BatchRunResult]:
    """Run the expiry job, then the overdue job, once each."""
    executor = build_executor(session_factory, settings, clock, dispatcher)
    return [
        executor.run(build_expiry_task(settings)),
        executor.run(build_overdue_task(settings)),
    ]


def build_runners(
    session_factory: Callable[[], Session],
    settings: FopSettings,
    clock: Clock | None = None,
    dispatcher: EventDispatcher | None = None,
    stop_event: threading.Event | None = None,
) -> list[DailyJobRunner]:
    """One runner per job, sharing ``stop_event`` so one signal stops both."""
    clock = clock or SystemClock()
    stop_event = stop_event or threading.Event()
    executor = build_executor(session_factory, settings, clock, dispatcher)
    scheduling = settings.scheduling
    expiry_task = build_expiry_task(settings)
    overdue_task = build_overdue_task(settings)

    return [
        DailyJobRunner(
            EXPIRY_JOB,
            lambda: executor.run(expiry_task),
            scheduling.expiry_job_time,
            scheduling.utc_offset_hours,
            clock=clock,
            retry_backoff_seconds=scheduling.retry_backoff_seconds,
            stop_event=stop_event,
        ),
        DailyJobRunner(
            OVERDUE_JOB,
            lambda: executor.run(overdue_task),
            scheduling.overdue_job_time,
            scheduling.utc_offset_hours,
            clock=clock,
            retry_backoff_seconds=scheduling.retry_backoff_seconds,
            stop_event=stop_event,
        ),
    ]
