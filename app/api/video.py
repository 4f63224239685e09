"""
Video Generation API Routes
Handles video generation requests, status queries and provider webhooks.
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Mapping, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import get_video_job_service
from app.core.config import settings
from app.core.errors import ConfigurationError, NotFoundError, ValidationError, WebhookAuthError
from app.schemas.job import JobEnvelope, JobResponse, JobStatus
from app.schemas.video import (
    ErrorResponse,
    VideoGenerateRequest,
    VideoGenerateResponse,
    VideoStatusRequest,
    VideoWebhookPayload,
    WebhookAck,
)
from app.services.storage import imagekit_url
from app.services.video_jobs import VideoJobService
from app.services.video_provider import extract_result_url

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post("/video/generate", response_model=VideoGenerateResponse, responses=_ERROR_RESPONSES)
async def generate_video(
    request: VideoGenerateRequest,
    service: VideoJobService = Depends(get_video_job_service),
):
    """
    Generate an ad video.

    Returns {videoUrl} when the provider finishes right away (200), or
    {jobId} when it defers the work (202); poll /video/status with the id.
    """
    job = await service.create(
        prompt=request.prompt,
        image_url=request.image_url,
        duration_seconds=request.duration_seconds,
    )

    if job.status == JobStatus.COMPLETED.value:
        body = VideoGenerateResponse(
            video_url=job.result_url,
            imagekit_url=imagekit_url(job.result_url),
            job_id=job.id,
        )
        return JSONResponse(content=body.model_dump(by_alias=True, exclude_none=True))

    body = VideoGenerateResponse(job_id=job.id)
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def _job_envelope(service: VideoJobService, job_id: Optional[str]) -> JobEnvelope:
    if not job_id:
        raise ValidationError("jobId required")
    job = service.get_status(job_id)
    return JobEnvelope(job=JobResponse.model_validate(job))


@router.get("/video/status", response_model=JobEnvelope, responses={404: {"model": ErrorResponse}})
async def get_video_status(
    job_id: Optional[str] = Query(None, alias="jobId"),
    service: VideoJobService = Depends(get_video_job_service),
):
    """Get the current state of a video job."""
    return _job_envelope(service, job_id)


@router.post("/video/status", response_model=JobEnvelope, responses={404: {"model": ErrorResponse}})
async def post_video_status(
    request: Request,
    job_id: Optional[str] = Query(None, alias="jobId"),
    service: VideoJobService = Depends(get_video_job_service),
):
    """Same as GET, with jobId taken from the JSON body first."""
    raw = await request.body()
    try:
        body = VideoStatusRequest.model_validate_json(raw or b"{}")
    except PydanticValidationError as e:
        raise ValidationError(f"invalid status request: {e.errors()[0].get('msg')}")
    return _job_envelope(service, body.job_id or job_id)


def _webhook_key(secret: str) -> bytes:
    # whsec_<base64 key>; a bare secret is used as-is
    if secret.startswith("whsec_"):
        try:
            return base64.b64decode(secret[len("whsec_"):])
        except ValueError as e:
            raise ConfigurationError("WEBHOOK_SECRET is not valid base64") from e
    return secret.encode()


def verify_webhook_signature(raw_body: bytes, headers: Mapping[str, str]):
    """
    Check a Standard Webhooks signature when a webhook secret is configured.

    The provider signs "{webhook-id}.{webhook-timestamp}.{body}" with
    HMAC-SHA256 and sends space-separated "v1,<base64>" values in the
    webhook-signature header.
    """
    if not settings.WEBHOOK_SECRET:
        return

    msg_id = headers.get("webhook-id")
    timestamp = headers.get("webhook-timestamp")
    signatures = headers.get("webhook-signature")
    if not (msg_id and timestamp and signatures):
        raise WebhookAuthError("missing webhook signature headers")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise WebhookAuthError("bad webhook timestamp")
    if abs(time.time() - sent_at) > settings.WEBHOOK_TOLERANCE_SECONDS:
        raise WebhookAuthError("webhook timestamp outside tolerance")

    signed = f"{msg_id}.{timestamp}.".encode() + raw_body
    digest = hmac.new(_webhook_key(settings.WEBHOOK_SECRET), signed, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode()
    for candidate in signatures.split():
        version, _, value = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(expected, value):
            return
    raise WebhookAuthError("bad webhook signature")


@router.post("/video/webhook", response_model=WebhookAck, responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}})
async def video_webhook(
    request: Request,
    our_job_id: Optional[str] = Query(None),
    service: VideoJobService = Depends(get_video_job_service),
):
    """Provider callback: apply the reported status to the matching job."""
    raw = await request.body()
    verify_webhook_signature(raw, request.headers)

    try:
        payload = VideoWebhookPayload.model_validate_json(raw or b"{}")
    except PydanticValidationError as e:
        raise ValidationError(f"invalid webhook payload: {e.errors()[0].get('msg')}")

    job_id = payload.our_job_id or our_job_id
    result_url = payload.video_url or payload.result_url
    if not result_url and payload.output is not None:
        result_url = extract_result_url({"output": payload.output})

    try:
        service.reconcile(
            payload.status,
            provider_job_id=payload.provider_job_id,
            job_id=job_id,
            result_url=result_url,
            error=str(payload.error) if payload.error else None,
        )
    except NotFoundError:
        logger.error(f"Webhook: no matching job (provider_job_id={payload.provider_job_id}, our_job_id={job_id})")
        raise ValidationError("no matching job")

    return WebhookAck(ok=True)
