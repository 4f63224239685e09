# Pydantic schemas package
from app.schemas.job import JobResponse, JobEnvelope, JobListResponse, JobStatus, TERMINAL_STATUSES
from app.schemas.video import (
    VideoGenerateRequest, VideoGenerateResponse, VideoStatusRequest,
    VideoWebhookPayload, WebhookAck, ErrorResponse
)

__all__ = [
    "JobResponse", "JobEnvelope", "JobListResponse", "JobStatus", "TERMINAL_STATUSES",
    "VideoGenerateRequest", "VideoGenerateResponse", "VideoStatusRequest",
    "VideoWebhookPayload", "WebhookAck", "ErrorResponse",
]
