"""
AdVid API Client
Async HTTP client for submitting video requests and waiting for results.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.client.errors import GenerationFailedError, GenerationRequestError, JobNotFoundError
from app.client.poller import DEFAULT_INITIAL_DELAY, DEFAULT_INTERVAL, StatusPoller, UpdateCallback

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except ValueError:
        return response.text


class VideoAdClient:
    """
    Client for the video generation API.

    Usage:
        async with VideoAdClient("http://localhost:8000") as client:
            url = await client.wait_for_video("neon sneaker ad")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 90.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def __aenter__(self) -> "VideoAdClient":
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def submit(
        self,
        prompt: str,
        image_url: Optional[str] = None,
        duration_seconds: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Submit a generation request.

        Returns:
            {"videoUrl": ...} when finished synchronously, else {"jobId": ...}
        """
        body: Dict[str, Any] = {"prompt": prompt}
        if image_url:
            body["imageUrl"] = image_url
        if duration_seconds:
            body["durationSeconds"] = duration_seconds

        response = await self._client.post(f"{API_PREFIX}/video/generate", json=body)
        if not response.is_success:
            raise GenerationRequestError(response.status_code, _error_message(response))
        return response.json()

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        """
        Fetch the job record.

        Transport errors, 5xx and unreadable bodies (e.g. a proxy error page)
        propagate as httpx errors so the poller can retry them.
        """
        response = await self._client.get(f"{API_PREFIX}/video/status", params={"jobId": job_id})
        if response.status_code == 404:
            raise JobNotFoundError(job_id)
        response.raise_for_status()
        try:
            return response.json()["job"]
        except (ValueError, KeyError, TypeError) as e:
            raise httpx.DecodingError(f"Unreadable status response: {e}", request=response.request) from e

    async def wait_for_video(
        self,
        prompt: str,
        image_url: Optional[str] = None,
        duration_seconds: Optional[int] = None,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: Optional[int] = None,
        on_update: Optional[UpdateCallback] = None,
    ) -> str:
        """
        Submit and wait until the video is ready.

        Returns:
            The video URL. Cancelling the awaiting task stops polling.

        Raises:
            GenerationRequestError: submit rejected (quota, billing, provider)
            GenerationFailedError: the job ended in the failed state
            PollTimeoutError: max_attempts exhausted
        """
        submitted = await self.submit(prompt, image_url=image_url, duration_seconds=duration_seconds)
        if submitted.get("videoUrl"):
            return submitted["videoUrl"]

        job_id = submitted.get("jobId")
        if not job_id:
            raise GenerationRequestError(200, "response had neither videoUrl nor jobId")

        logger.info(f"Waiting for job {job_id}")
        poller = StatusPoller(
            self,
            job_id,
            initial_delay=initial_delay,
            interval=interval,
            max_attempts=max_attempts,
            on_update=on_update,
        )
        job = await poller.run()
        if job["status"] == "failed":
            raise GenerationFailedError(job_id, job.get("error_text"))
        return job["result_url"]
