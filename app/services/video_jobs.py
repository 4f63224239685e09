"""
Video Job Service
Creates video jobs, applies provider updates and answers status queries.

State machine per job:
    pending -> processing -> completed | failed
    pending -> completed | failed

Every status write is a single conditional UPDATE that only matches rows in
an allowed source state, so a late webhook can never move a terminal job.
"""

import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AppError, NotFoundError, ProviderError, StorageError, ValidationError
from app.models.job import VideoJob
from app.schemas.job import JobStatus, TERMINAL_STATUSES
from app.services.storage import StorageService
from app.services.video_provider import (
    DeferredHandle,
    ImmediateResult,
    PROVIDER_STATUS_MAP,
    VideoProvider,
)

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


def new_job_id() -> str:
    return f"vjob_{uuid.uuid4().hex[:12]}"


def normalize_status(raw: str) -> str:
    """Map our own or provider status vocabulary onto JobStatus values."""
    value = (raw or "").strip().lower()
    if value in {s.value for s in JobStatus}:
        return value
    if value in PROVIDER_STATUS_MAP:
        return PROVIDER_STATUS_MAP[value]
    raise ValidationError(f"unknown status: {raw}")


class VideoJobService:
    """
    Job orchestration for video generation.

    Usage:
        service = VideoJobService(db, provider=VideoProvider())
        job = await service.create("neon sneaker ad", duration_seconds=6)
        ...
        service.reconcile("completed", provider_job_id="abc", result_url="https://...")
    """

    def __init__(
        self,
        db: Session,
        provider: Optional[VideoProvider] = None,
        storage: Optional[StorageService] = None,
    ):
        self.db = db
        self.provider = provider or VideoProvider()
        self.storage = storage

    # --- Reads ---

    def get_status(self, job_id: str) -> VideoJob:
        """Get a job by id or raise NotFoundError."""
        job = self.db.query(VideoJob).filter(VideoJob.id == job_id).first()
        if not job:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def find_by_provider_job_id(self, provider_job_id: str) -> Optional[VideoJob]:
        return self.db.query(VideoJob).filter(VideoJob.provider_job_id == provider_job_id).first()

    def list_jobs(self, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[VideoJob]:
        """List jobs, newest first."""
        query = self.db.query(VideoJob)
        if status:
            query = query.filter(VideoJob.status == status)
        return query.order_by(VideoJob.created_at.desc()).offset(offset).limit(limit).all()

    def list_stale_processing(self, older_than: datetime, limit: int = 50) -> List[VideoJob]:
        """Processing jobs not updated since `older_than`."""
        return (
            self.db.query(VideoJob)
            .filter(
                VideoJob.status == JobStatus.PROCESSING.value,
                VideoJob.provider_job_id.isnot(None),
                VideoJob.updated_at < older_than,
            )
            .order_by(VideoJob.updated_at.asc())
            .limit(limit)
            .all()
        )

    # --- Writes ---

    def _transition(self, job_id: str, allowed_from: Iterable[str], values: Dict[str, Any]) -> bool:
        """
        Compare-and-set: apply `values` only if the job's status is in `allowed_from`.

        Returns:
            True if the row was updated
        """
        values = {**values, "updated_at": datetime.utcnow()}
        updated = (
            self.db.query(VideoJob)
            .filter(VideoJob.id == job_id, VideoJob.status.in_(tuple(allowed_from)))
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        return updated == 1

    def _attach_provider_job_id(self, job_id: str, provider_job_id: str) -> bool:
        """Set provider_job_id if it has never been set."""
        updated = (
            self.db.query(VideoJob)
            .filter(VideoJob.id == job_id, VideoJob.provider_job_id.is_(None))
            .update(
                {"provider_job_id": provider_job_id, "updated_at": datetime.utcnow()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def _complete(self, job_id: str, result_url: str) -> bool:
        return self._transition(job_id, _OPEN_STATUSES, {
            "status": JobStatus.COMPLETED.value,
            "result_url": result_url,
            "error_text": None,
            "completed_at": datetime.utcnow(),
        })

    def _fail(self, job_id: str, error_text: str) -> bool:
        return self._transition(job_id, _OPEN_STATUSES, {
            "status": JobStatus.FAILED.value,
            "result_url": None,
            "error_text": error_text or "Generation failed",
            "completed_at": datetime.utcnow(),
        })

    async def create(
        self,
        prompt: str,
        image_url: Optional[str] = None,
        duration_seconds: Optional[int] = None,
    ) -> VideoJob:
        """
        Create a job and submit it to the provider.

        The returned job is `completed` when the provider answered with a
        video, or `processing` when the provider deferred the work.
        Provider errors mark the job `failed` and are re-raised.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("prompt required")
        if duration_seconds is not None and duration_seconds <= 0:
            raise ValidationError("durationSeconds must be positive")

        self.provider.ensure_configured()

        duration = duration_seconds or settings.VIDEO_DEFAULT_DURATION
        job = VideoJob(
            id=new_job_id(),
            prompt=prompt.strip(),
            image_url=image_url or None,
            duration_seconds=duration,
            provider=self.provider.name,
            status=JobStatus.PENDING.value,
        )
        self.db.add(job)
        self.db.commit()
        job_id = job.id
        logger.info(f"Created video job {job_id}")

        webhook_url = settings.webhook_url
        if webhook_url:
            webhook_url = f"{webhook_url}?our_job_id={job_id}"

        try:
            result = await self.provider.submit(
                prompt=job.prompt,
                image_url=image_url,
                duration_seconds=duration,
                webhook_url=webhook_url,
            )
        except AppError as e:
            self._fail(job_id, str(e))
            logger.warning(f"Job {job_id} failed at submission: {e}")
            raise
        except Exception as e:
            self._fail(job_id, f"Unexpected provider failure: {e}")
            logger.exception(f"Job {job_id} failed at submission")
            raise ProviderError(f"Unexpected provider failure: {e}") from e

        if isinstance(result, ImmediateResult):
            result_url = result.url
            if self.storage is not None:
                try:
                    result_url = await self.storage.mirror_video(result.url)
                except StorageError as e:
                    logger.error(f"Job {job_id}: {e}")
                    self._fail(job_id, "Failed to store video")
                    raise
            self._complete(job_id, result_url)
            logger.info(f"Job {job_id} completed synchronously")

        elif isinstance(result, DeferredHandle):
            self._attach_provider_job_id(job_id, result.provider_job_id)
            self._transition(job_id, (JobStatus.PENDING.value,), {"status": JobStatus.PROCESSING.value})
            logger.info(f"Job {job_id} processing as provider job {result.provider_job_id}")

        return self.get_status(job_id)

    def reconcile(
        self,
        status: Optional[str],
        provider_job_id: Optional[str] = None,
        job_id: Optional[str] = None,
        result_url: Optional[str] = None,
        error: Optional[str] = None,
    ) -> VideoJob:
        """
        Apply an externally reported status to a job.

        Idempotent: terminal jobs are returned unchanged, and repeating the
        same update has no further effect.
        """
        if not job_id and not provider_job_id:
            raise ValidationError("provider_job_id or our_job_id required")

        job = None
        if job_id:
            job = self.db.query(VideoJob).filter(VideoJob.id == job_id).first()
        if job is None and provider_job_id:
            job = self.find_by_provider_job_id(provider_job_id)
        if job is None:
            raise NotFoundError(f"No job for id={job_id} provider_job_id={provider_job_id}")

        if status:
            target = normalize_status(status)
        elif result_url:
            target = JobStatus.COMPLETED.value
        elif error:
            target = JobStatus.FAILED.value
        else:
            raise ValidationError("status required")

        if target == JobStatus.COMPLETED.value and not result_url:
            raise ValidationError("result url required for completed status")

        target_job_id = job.id
        if provider_job_id and job.provider_job_id is None:
            self._attach_provider_job_id(target_job_id, provider_job_id)

        if target == JobStatus.COMPLETED.value:
            applied = self._complete(target_job_id, result_url)
        elif target == JobStatus.FAILED.value:
            applied = self._fail(target_job_id, error)
        elif target == JobStatus.PROCESSING.value:
            applied = self._transition(target_job_id, (JobStatus.PENDING.value,), {"status": target})
        else:
            applied = False

        if applied:
            logger.info(f"Reconciled job {target_job_id} -> {target}")
        else:
            logger.info(f"Ignored {target} update for job {target_job_id}")

        self.db.expire_all()
        return self.get_status(target_job_id)

    async def refresh_from_provider(self, job: VideoJob) -> VideoJob:
        """Ask the provider for a processing job's state and reconcile it."""
        if job.status in TERMINAL_STATUSES or not job.provider_job_id:
            return job
        snapshot = await self.provider.fetch(job.provider_job_id)
        if snapshot.status == JobStatus.PROCESSING.value:
            return job
        return self.reconcile(
            snapshot.status,
            job_id=job.id,
            result_url=snapshot.result_url,
            error=snapshot.error,
        )
