"""
Status Poller
Client-side loop that checks a video job until it reaches a terminal state.

One coroutine, one request in flight: the next check is scheduled only after
the current one returns. Stopping the poller (stop() or cancelling its task)
ends the loop without leaving a pending sleep behind.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union

import httpx

from app.client.errors import JobNotFoundError, PollTimeoutError
from app.schemas.job import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY = 1.5
DEFAULT_INTERVAL = 3.0

UpdateCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class StatusSource(Protocol):
    async def get_status(self, job_id: str) -> Dict[str, Any]:
        ...


class StatusPoller:
    """
    Poll a job until it is completed or failed.

    Usage:
        poller = StatusPoller(client, job_id, on_update=print)
        job = await poller.run()   # None if stopped early
    """

    def __init__(
        self,
        client: StatusSource,
        job_id: str,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: Optional[int] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        self.client = client
        self.job_id = job_id
        self.initial_delay = initial_delay
        self.interval = interval
        self.max_attempts = max_attempts
        self.on_update = on_update
        self.attempts = 0
        self.last_job: Optional[Dict[str, Any]] = None
        self._stopped = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self):
        """Stop polling; run() returns None at its next wake-up."""
        self._stopped.set()

    async def _wait(self, delay: float) -> bool:
        """Sleep for `delay` seconds. Returns False if stopped meanwhile."""
        if self.stopped:
            return False
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def _notify(self, job: Dict[str, Any]):
        if self.on_update is None:
            return
        result = self.on_update(job)
        if inspect.isawaitable(result):
            await result

    async def poll_once(self) -> Optional[Dict[str, Any]]:
        """
        One status check.

        Returns:
            The job dict, or None if the check failed in transport
        """
        self.attempts += 1
        try:
            job = await self.client.get_status(self.job_id)
        except JobNotFoundError:
            raise
        except httpx.HTTPError as e:
            logger.warning(f"Status check {self.attempts} for {self.job_id} failed: {e}")
            return None

        self.last_job = job
        await self._notify(job)
        return job

    async def run(self) -> Optional[Dict[str, Any]]:
        """
        Poll until the job is terminal.

        Returns:
            The terminal job dict, or None if the poller was stopped

        Raises:
            JobNotFoundError: the server does not know the job
            PollTimeoutError: max_attempts checks without a terminal state
        """
        if not await self._wait(self.initial_delay):
            return None

        while True:
            job = await self.poll_once()
            if job is not None and job.get("status") in TERMINAL_STATUSES:
                logger.info(f"Job {self.job_id} finished as {job['status']} after {self.attempts} checks")
                return job

            if self.max_attempts is not None and self.attempts >= self.max_attempts:
                raise PollTimeoutError(self.job_id, self.attempts)

            if not await self._wait(self.interval):
                logger.info(f"Polling for {self.job_id} stopped")
                return None
