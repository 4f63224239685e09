"""
Provider Reconciliation Sweep
Finds jobs that have been processing for a while and asks the provider for
their state. Covers webhooks that never arrive (service not publicly
reachable, provider retries exhausted).
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.errors import AppError
from app.services.video_jobs import VideoJobService
from app.services.video_provider import VideoProvider

logger = logging.getLogger(__name__)


async def reconcile_stale_jobs(
    session_factory: Callable[[], Session] = SessionLocal,
    provider: Optional[VideoProvider] = None,
    min_age_seconds: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, int]:
    """
    Run one sweep.

    Returns:
        Counts of checked, updated and errored jobs
    """
    min_age = settings.RECONCILE_MIN_AGE if min_age_seconds is None else min_age_seconds
    cutoff = datetime.utcnow() - timedelta(seconds=min_age)
    stats = {"checked": 0, "updated": 0, "errors": 0}

    db = session_factory()
    try:
        service = VideoJobService(db, provider=provider or VideoProvider())
        jobs = service.list_stale_processing(cutoff, limit=limit or settings.RECONCILE_BATCH_SIZE)

        for job in jobs:
            stats["checked"] += 1
            job_id = job.id
            try:
                refreshed = await service.refresh_from_provider(job)
            except AppError as e:
                # One bad job should not stop the sweep
                stats["errors"] += 1
                logger.warning(f"Could not refresh job {job_id}: {e}")
                continue

            if refreshed.status != "processing":
                stats["updated"] += 1
                logger.info(f"Job {job_id} reconciled from provider as {refreshed.status}")
    finally:
        db.close()

    if stats["checked"]:
        logger.info(f"Reconciliation sweep: {stats}")
    return stats


async def run_reconciler(
    interval: Optional[int] = None,
    stop_event: Optional[asyncio.Event] = None,
    **sweep_kwargs,
):
    """Run sweeps every `interval` seconds until stop_event is set."""
    interval = interval or settings.RECONCILE_INTERVAL
    stop_event = stop_event or asyncio.Event()
    logger.info(f"Reconciler started (interval={interval}s)")

    while not stop_event.is_set():
        try:
            await reconcile_stale_jobs(**sweep_kwargs)
        except Exception as e:
            logger.error(f"Reconciliation sweep failed: {e}")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    logger.info("Reconciler stopped")
