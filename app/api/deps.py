"""
API Dependencies
Common dependencies for FastAPI routes (database sessions, services).
"""

from typing import Generator, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.storage import StorageService
from app.services.video_jobs import VideoJobService
from app.services.video_provider import VideoProvider


def get_db() -> Generator:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_provider() -> VideoProvider:
    """Video provider client."""
    return VideoProvider()


def get_storage() -> Optional[StorageService]:
    """Result storage, only when mirroring is enabled."""
    if not settings.MIRROR_RESULTS:
        return None
    return StorageService()


def get_video_job_service(
    db: Session = Depends(get_db),
    provider: VideoProvider = Depends(get_provider),
    storage: Optional[StorageService] = Depends(get_storage),
) -> VideoJobService:
    return VideoJobService(db, provider=provider, storage=storage)
