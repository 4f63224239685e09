#!/usr/bin/env python3
"""
Generate an ad video from the command line.

Submits a request to a running API and polls until the video is ready.

Usage:
    python scripts/generate_video.py "neon sneaker ad"
    python scripts/generate_video.py "neon sneaker ad" --image https://.../shoe.png --duration 6
    python scripts/generate_video.py --status vjob_1234abcd5678
"""

import argparse
import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.client import (
    GenerationFailedError,
    GenerationRequestError,
    JobNotFoundError,
    PollTimeoutError,
    VideoAdClient,
)
from app.core.config import settings


logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger("generate_video")


def _print_update(job: dict):
    print(f"  [{job['status']}] {job['id']}")


async def _generate(args) -> int:
    async with VideoAdClient(args.api_url) as client:
        if args.status:
            job = await client.get_status(args.status)
            print(job)
            return 0

        print("Submitting video request...")
        url = await client.wait_for_video(
            args.prompt,
            image_url=args.image,
            duration_seconds=args.duration,
            initial_delay=settings.POLL_INITIAL_DELAY,
            interval=settings.POLL_INTERVAL,
            max_attempts=args.max_attempts,
            on_update=_print_update,
        )
        print(f"Video ready: {url}")
        return 0


def main():
    parser = argparse.ArgumentParser(description="Generate an ad video")
    parser.add_argument("prompt", nargs="?", help="Ad creative description")
    parser.add_argument("--image", help="Product/reference image URL")
    parser.add_argument("--duration", type=int, default=None, help="Duration in seconds (default: 6)")
    parser.add_argument("--api-url", default=os.environ.get("ADVID_API_URL", "http://localhost:8000"))
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=settings.POLL_MAX_ATTEMPTS,
        help=f"Give up after this many status checks (default: {settings.POLL_MAX_ATTEMPTS})"
    )
    parser.add_argument("--status", metavar="JOB_ID", help="Print a job's status and exit")

    args = parser.parse_args()
    if not args.prompt and not args.status:
        parser.error("prompt is required")

    try:
        sys.exit(asyncio.run(_generate(args)))
    except GenerationRequestError as e:
        if e.is_quota_error:
            print(f"Quota or billing problem: {e.message}")
        else:
            print(f"Request failed: {e.message}")
        sys.exit(2)
    except GenerationFailedError as e:
        print(f"Generation failed: {e.error_text}")
        sys.exit(3)
    except JobNotFoundError as e:
        print(f"Job not found: {e}")
        sys.exit(4)
    except PollTimeoutError as e:
        print(str(e))
        sys.exit(5)
    except KeyboardInterrupt:
        print("Cancelled")
        sys.exit(130)


if __name__ == "__main__":
    main()
