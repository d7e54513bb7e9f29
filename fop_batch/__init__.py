"""
fop_batch -- Daily reconciliation jobs.

Provides the schedule math, the batch executor with per-item SAVEPOINT
isolation, the two reconciliation tasks (permit expiry and invoice
overdue/interest) and the long-running daily job runner.

Architecture:
    fop_batch/ is a top-level package.  Nothing in fop_kernel/ or
    fop_modules/ imports from fop_batch.

Invariants:
    - One SAVEPOINT per item; a failed item never aborts the run.
    - One commit per run, after the last item.
    - All time comes from an injected Clock.
    - The runner stops promptly when its stop event is set.
"""
