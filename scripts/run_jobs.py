#!/usr/bin/env python3
"""
Run the daily reconciliation jobs (permit expiry, invoice overdue/interest).

Loads settings (packaged defaults, overridden by ``$FOP_CONFIG`` or
``--config``), configures JSON logging, creates missing tables and starts
one runner per job.  SIGINT/SIGTERM stop both runners; the remaining delay
is discarded.

Usage:
    python3 scripts/run_jobs.py [--config PATH] [--once]

Examples:
    # Long-running worker
    FOP_CONFIG=/etc/fop/production.yaml python3 scripts/run_jobs.py

    # Run both batches once and exit (cron, smoke tests)
    python3 scripts/run_jobs.py --once
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from fop_batch.domain.types import BatchRunStatus  # noqa: E402
from fop_batch.jobs import build_runners, run_all_once  # noqa: E402
from fop_config import get_settings  # noqa: E402
from fop_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url  # noqa: E402
from fop_kernel.domain.clock import SystemClock  # noqa: E402
from fop_kernel.logging_config import configure_logging, get_logger  # noqa: E402
from fop_kernel.services.event_dispatcher import EventDispatcher  # noqa: E402
from fop_modules.notifications import LoggingNotificationSender, register_default_handlers  # noqa: E402

logger = get_logger("scripts.run_jobs")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the FOP daily reconciliation jobs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings override (default: $FOP_CONFIG, else packaged defaults).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run both batches a single time and exit.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    settings = get_settings(args.config)
    configure_logging(level=settings.logging.level)

    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    create_tables()
    session_factory = get_session_factory()

    dispatcher = EventDispatcher()
    register_default_handlers(dispatcher, LoggingNotificationSender())
    clock = SystemClock()

    if args.once:
        results = run_all_once(session_factory, settings, clock, dispatcher)
        for result in results:
            print(
                f"{result.task_type}: {result.status.value} "
                f"({result.succeeded} succeeded, {result.failed} failed, {result.skipped} skipped)"
            )
        return 0 if all(r.status is BatchRunStatus.COMPLETED for r in results) else 1

    stop_event = threading.Event()
    runners = build_runners(session_factory, settings, clock, dispatcher, stop_event)

    def _handle_signal(signum, frame):
        logger.info("shutdown_requested", extra={"signal": signal.Signals(signum).name})
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    for runner in runners:
        runner.start()
    logger.info("job_runners_started", extra={"jobs": [r.name for r in runners]})

    stop_event.wait()
    for runner in runners:
        runner.stop()
    logger.info("job_runners_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
