#!/usr/bin/env python3
"""
Reconciler Startup Script
Periodically checks processing video jobs against the provider.

Usage:
    python scripts/run_reconciler.py                 # Run forever
    python scripts/run_reconciler.py --once          # Single sweep
    python scripts/run_reconciler.py --interval 10   # Sweep every 10s
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings
from app.core.database import init_db
from app.workers.reconciler import reconcile_stale_jobs, run_reconciler


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("reconciler")


async def _run_forever(interval: int, min_age: int):
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows
    await run_reconciler(interval=interval, stop_event=stop_event, min_age_seconds=min_age)


def main():
    parser = argparse.ArgumentParser(description="Reconcile processing video jobs with the provider")
    parser.add_argument(
        "--interval", "-i",
        type=int,
        default=settings.RECONCILE_INTERVAL,
        help=f"Seconds between sweeps (default: {settings.RECONCILE_INTERVAL})"
    )
    parser.add_argument(
        "--min-age",
        type=int,
        default=settings.RECONCILE_MIN_AGE,
        help=f"Only check jobs processing at least this many seconds (default: {settings.RECONCILE_MIN_AGE})"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit"
    )

    args = parser.parse_args()

    if not settings.REPLICATE_API_TOKEN:
        logger.error("REPLICATE_API_TOKEN is not set")
        sys.exit(1)

    init_db()

    if args.once:
        stats = asyncio.run(reconcile_stale_jobs(min_age_seconds=args.min_age))
        print(f"Checked {stats['checked']}, updated {stats['updated']}, errors {stats['errors']}")
        sys.exit(1 if stats["errors"] else 0)

    asyncio.run(_run_forever(args.interval, args.min_age))


if __name__ == "__main__":
    main()
