"""
Job Schemas
Pydantic models for job API requests and responses.
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, ConfigDict


class JobStatus(str, Enum):
    """Job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED.value, JobStatus.FAILED.value})


class JobResponse(BaseModel):
    """Schema for a video job record."""
    id: str
    prompt: str
    image_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    provider: str
    provider_job_id: Optional[str] = None
    status: JobStatus
    result_url: Optional[str] = None
    error_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class JobEnvelope(BaseModel):
    """Status endpoint response: {"job": {...}}"""
    job: JobResponse


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    limit: int
    offset: int
