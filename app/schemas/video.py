"""
Video Generation Schemas
Pydantic models for video generation API requests and responses.

Field names on the wire are camelCase for the web client (imageUrl,
durationSeconds, videoUrl, jobId); the webhook keeps the provider's
snake_case names.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator


class VideoGenerateRequest(BaseModel):
    """Schema for video generation request."""
    prompt: str = Field(..., description="Ad creative description")
    image_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("imageUrl", "image_url"),
        description="Optional product/reference image URL",
    )
    duration_seconds: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("durationSeconds", "duration_seconds"),
        description="Clip length in seconds (default 6)",
    )

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("prompt required")
        return v


class VideoGenerateResponse(BaseModel):
    """Either videoUrl (finished synchronously) or jobId alone (poll for status)."""
    model_config = ConfigDict(populate_by_name=True)

    video_url: Optional[str] = Field(None, alias="videoUrl")
    imagekit_url: Optional[str] = Field(None, alias="imageKitUrl")
    job_id: Optional[str] = Field(None, alias="jobId")


class VideoStatusRequest(BaseModel):
    """Status query body; jobId may also be given as a query parameter."""
    job_id: Optional[str] = Field(None, validation_alias=AliasChoices("jobId", "job_id"))


class VideoWebhookPayload(BaseModel):
    """
    Provider callback.

    Identifies the job by provider_job_id (or job_id) and/or our_job_id, and
    carries the result as video_url, result_url or a raw prediction `output`.
    """
    model_config = ConfigDict(extra="allow")

    provider_job_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("provider_job_id", "job_id", "id")
    )
    our_job_id: Optional[str] = None
    status: Optional[str] = None
    video_url: Optional[str] = None
    result_url: Optional[str] = None
    output: Optional[Any] = None
    error: Optional[Any] = None

    @field_validator("provider_job_id", "our_job_id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if v is None or v == "":
            return None
        return str(v)


class WebhookAck(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str
