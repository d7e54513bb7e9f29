"""
DailyJobRunner -- long-running, single-instance daily job loop.

Contract:
    Each iteration computes the next fixed local time (fixed UTC offset)
    from the injected clock, waits for it, runs the job and repeats.
    A failed run is logged and followed by a fixed backoff; the loop never
    dies because of a job failure.

Invariants enforced:
    - One run at a time per runner; runs never overlap.
    - At most one run per scheduled time.  A wait that returns before the
      target instant is resumed for the remainder.
    - Setting the stop event ends the loop promptly; the remaining delay
      is discarded and recovery resumes at the next natural boundary.
"""

from __future__ import annotations

import threading
from datetime import datetime, time
from typing import Any, Callable

from fop_batch.domain.schedule import next_run
from fop_kernel.domain.clock import Clock, SystemClock
from fop_kernel.logging_config import get_logger

logger = get_logger("batch.runner")

# Blocks for up to the given seconds; returns True when the runner should stop.
Waiter = Callable[[float], bool]


class DailyJobRunner:
    """
    Runs ``job`` once a day at ``run_at`` local time.

    ``waiter`` defaults to the stop event's ``wait`` and is injectable so
    tests can drive the loop without real-time sleeps.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Any],
        run_at: time,
        utc_offset_hours: int,
        clock: Clock | None = None,
        retry_backoff_seconds: float = 300,
        stop_event: threading.Event | None = None,
        waiter: Waiter | None = None,
    ):
        self._name = name
        self._job = job
        self._run_at = run_at
        self._utc_offset_hours = utc_offset_hours
        self._clock = clock or SystemClock()
        self._retry_backoff_seconds = retry_backoff_seconds
        self._stop_event = stop_event or threading.Event()
        self._waiter = waiter or self._stop_event.wait
        self._thread: threading.Thread | None = None
        self._last_target: datetime | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def next_run_at(self) -> datetime:
        """Next scheduled instant, always after the last one already served."""
        reference = self._clock.now_utc()
        if self._last_target is not None and self._last_target > reference:
            reference = self._last_target
        return next_run(reference, self._run_at, self._utc_offset_hours)

    def seconds_until_next_run(self) -> float:
        return max((self.next_run_at() - self._clock.now_utc()).total_seconds(), 0.0)

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def run_once(self) -> bool:
        """Run the job now.  Returns False when it raised."""
        try:
            result = self._job()
        except Exception:
            logger.exception("daily_job_failed", extra={"job": self._name})
            return False
        logger.info(
            "daily_job_completed",
            extra={"job": self._name, "status": getattr(getattr(result, "status", None), "value", None)},
        )
        return True

    def run_forever(self) -> None:
        """Loop until the stop event is set (or the waiter says stop)."""
        logger.info(
            "daily_job_runner_started",
            extra={
                "job": self._name,
                "run_at": self._run_at.isoformat(),
                "utc_offset_hours": self._utc_offset_hours,
            },
        )
        while not self._stop_event.is_set():
            target = self.next_run_at()
            logger.info(
                "daily_job_scheduled",
                extra={
                    "job": self._name,
                    "next_run_at": target.isoformat(),
                    "delay_seconds": self.seconds_until_next_run(),
                },
            )
            if self._wait_until(target):
                break
            self._last_target = target
            if not self.run_once():
                logger.warning(
                    "daily_job_backoff",
                    extra={"job": self._name, "backoff_seconds": self._retry_backoff_seconds},
                )
                if self._waiter(self._retry_backoff_seconds):
                    break
        logger.info("daily_job_runner_stopped", extra={"job": self._name})

    def _wait_until(self, target: datetime) -> bool:
        """Wait until the clock reaches ``target``.  Returns True to stop."""
        while True:
            remaining = (target - self._clock.now_utc()).total_seconds()
            if remaining <= 0:
                return self._stop_event.is_set()
            if self._waiter(remaining) or self._stop_event.is_set():
                return True

    def start(self) -> None:
        """Run the loop in a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name=f"daily-job-{self._name}", daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
