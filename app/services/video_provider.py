"""
Video Provider Service
Submits video generation requests to the Replicate predictions API and
normalizes the answer into either an immediate result or a deferred job handle.

All provider-specific response sniffing stays in this module.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import httpx

from app.core.config import settings
from app.core.errors import (
    ConfigurationError,
    PaymentRequiredError,
    ProviderError,
    RateLimitError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Replicate prediction statuses -> job statuses
PROVIDER_STATUS_MAP = {
    "starting": "processing",
    "processing": "processing",
    "succeeded": "completed",
    "failed": "failed",
    "canceled": "failed",
}


@dataclass(frozen=True)
class ImmediateResult:
    """Provider finished synchronously."""
    url: str


@dataclass(frozen=True)
class DeferredHandle:
    """Provider accepted the job and will finish later."""
    provider_job_id: str


ProviderResult = Union[ImmediateResult, DeferredHandle]


@dataclass(frozen=True)
class ProviderStatus:
    """Normalized snapshot of a provider job."""
    provider_job_id: str
    status: str  # pending, processing, completed, failed
    result_url: Optional[str] = None
    error: Optional[str] = None


def _as_http_url(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.startswith(("http://", "https://")):
        return value
    return None


def extract_result_url(data: Dict[str, Any]) -> Optional[str]:
    """Find a finished video URL in a prediction payload."""
    output = data.get("output")
    candidates = []
    if isinstance(output, list) and output:
        candidates.append(output[0])
    else:
        candidates.append(output)
    candidates.extend([data.get("result"), data.get("output_url")])

    for candidate in candidates:
        url = _as_http_url(candidate)
        if url:
            return url
    return None


def extract_job_id(data: Dict[str, Any]) -> Optional[str]:
    """Find the provider's job identifier in a prediction payload."""
    job_id = data.get("id") or data.get("prediction_id")
    return str(job_id) if job_id else None


class VideoProvider:
    """
    Client for the external video generation service.

    Usage:
        provider = VideoProvider()
        result = await provider.submit("neon sneaker ad", duration_seconds=6)
        if isinstance(result, ImmediateResult):
            ...
    """

    def __init__(
        self,
        api_token: Optional[str] = None,
        api_base: Optional[str] = None,
        model_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = settings.REPLICATE_API_TOKEN if api_token is None else api_token
        self.api_base = (api_base or settings.REPLICATE_API_BASE).rstrip("/")
        self.model_version = model_version or settings.REPLICATE_MODEL_VERSION
        self.timeout = timeout or settings.PROVIDER_TIMEOUT
        self.name = settings.PROVIDER_NAME
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    def ensure_configured(self):
        """Raise ConfigurationError when the API token is missing."""
        if not self.configured:
            raise ConfigurationError("REPLICATE_API_TOKEN is not set")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Make one request and translate failures into provider errors."""
        self.ensure_configured()
        url = f"{self.api_base}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Provider unreachable ({method} {url}): {e}")
            raise ProviderError(f"Provider unreachable: {e}") from e

        if response.status_code == 429:
            logger.warning(f"Provider rate limited request to {url}: {response.text}")
            raise RateLimitError("Provider rate limit", upstream_status=429, body=response.text)
        if response.status_code == 402:
            logger.warning(f"Provider requires payment for {url}: {response.text}")
            raise PaymentRequiredError("Provider payment required", upstream_status=402, body=response.text)
        if not response.is_success:
            logger.error(f"Provider error {response.status_code} from {url}: {response.text}")
            raise ProviderError(
                f"Provider returned {response.status_code}",
                upstream_status=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Provider returned non-JSON body from {url}: {response.text[:500]}")
            raise ProviderError("Provider returned invalid JSON", upstream_status=response.status_code, body=response.text) from e

        if not isinstance(data, dict):
            raise ProviderError("Provider returned unexpected payload", upstream_status=response.status_code, body=response.text)
        return data

    async def submit(
        self,
        prompt: str,
        image_url: Optional[str] = None,
        duration_seconds: Optional[int] = None,
        webhook_url: Optional[str] = None,
    ) -> ProviderResult:
        """
        Start a video generation on the provider.

        Args:
            prompt: Scene description (required, non-blank)
            image_url: Optional reference/product image
            duration_seconds: Clip length, defaults to VIDEO_DEFAULT_DURATION
            webhook_url: Where the provider should report completion

        Returns:
            ImmediateResult when the video is already available,
            otherwise DeferredHandle with the provider's job id.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("prompt required")

        payload: Dict[str, Any] = {
            "version": self.model_version,
            "input": {
                "prompt": prompt,
                "image": image_url or None,
                "duration": duration_seconds or settings.VIDEO_DEFAULT_DURATION,
            },
        }
        if webhook_url:
            payload["webhook"] = webhook_url
            payload["webhook_events_filter"] = ["completed"]

        logger.info(f"Submitting video prediction: duration={payload['input']['duration']}, image={'yes' if image_url else 'no'}")
        data = await self._request("POST", "/predictions", json=payload)

        url = extract_result_url(data)
        if url:
            logger.info("Provider returned an immediate result")
            return ImmediateResult(url=url)

        job_id = extract_job_id(data)
        if job_id:
            logger.info(f"Provider accepted job {job_id}")
            return DeferredHandle(provider_job_id=job_id)

        logger.error(f"Provider response has neither result nor job id: {data}")
        raise ProviderError("Provider response missing result and job id", body=str(data))

    async def fetch(self, provider_job_id: str) -> ProviderStatus:
        """Fetch the current state of a provider job."""
        data = await self._request("GET", f"/predictions/{provider_job_id}")
        return self.normalize(data, provider_job_id)

    @staticmethod
    def normalize(data: Dict[str, Any], provider_job_id: Optional[str] = None) -> ProviderStatus:
        """Turn a prediction payload into a ProviderStatus."""
        raw_status = str(data.get("status") or "").lower()
        status = PROVIDER_STATUS_MAP.get(raw_status, "processing")
        result_url = extract_result_url(data) if status == "completed" else None
        if status == "completed" and not result_url:
            status = "failed"
            error = "Provider finished without a video URL"
        else:
            error = data.get("error") if status == "failed" else None
        return ProviderStatus(
            provider_job_id=provider_job_id or extract_job_id(data) or "",
            status=status,
            result_url=result_url,
            error=str(error) if error else None,
        )
