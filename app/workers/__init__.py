# Workers package - background reconciliation of video jobs

from app.workers.reconciler import (
    reconcile_stale_jobs,
    run_reconciler,
)

__all__ = [
    "reconcile_stale_jobs",
    "run_reconciler",
]
