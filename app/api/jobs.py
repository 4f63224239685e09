"""
Jobs API Routes
Handles job lookup and listing.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_video_job_service
from app.schemas.job import JobListResponse, JobResponse, JobStatus
from app.schemas.video import ErrorResponse
from app.services.video_jobs import VideoJobService

router = APIRouter()


@router.get("/{job_id}", response_model=JobResponse, responses={404: {"model": ErrorResponse}})
async def get_job(
    job_id: str,
    service: VideoJobService = Depends(get_video_job_service),
):
    """Get job status and result."""
    return service.get_status(job_id)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: VideoJobService = Depends(get_video_job_service),
):
    """List jobs, newest first, with an optional status filter."""
    jobs = service.list_jobs(
        status=job_status.value if job_status else None,
        limit=limit,
        offset=offset,
    )
    return JobListResponse(
        jobs=[JobResponse.model_validate(j) for j in jobs],
        limit=limit,
        offset=offset,
    )
