"""
Pure schedule functions for the daily jobs.

Contract:
    Every function takes the current instant as an argument and performs
    no I/O, so the runner can be tested with a deterministic clock.

Both jobs run at a fixed local wall-clock time in a fixed UTC offset
(no daylight saving), e.g. 00:00 at UTC-4.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from fop_kernel.domain.clock import local_today

__all__ = ["local_today", "next_run", "seconds_until_next_run"]


def _zone(utc_offset_hours: int) -> timezone:
    return timezone(timedelta(hours=utc_offset_hours))


def _aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def next_run(now: datetime, run_at: time, utc_offset_hours: int) -> datetime:
    """
    Next instant strictly after ``now`` at which the local clock reads
    ``run_at``.  Returned in UTC.

    Exactly at the boundary the next run is one day later, so a job that
    finishes within the same second never fires twice.
    """
    local_now = _aware(now).astimezone(_zone(utc_offset_hours))
    candidate = datetime.combine(local_now.date(), run_at, tzinfo=local_now.tzinfo)
    if candidate <= local_now:
        candidate += timedelta(days=1)
    return candidate.astimezone(timezone.utc)


def seconds_until_next_run(now: datetime, run_at: time, utc_offset_hours: int) -> float:
    return (next_run(now, run_at, utc_offset_hours) - _aware(now)).total_seconds()
