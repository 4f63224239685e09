"""
Video Job Model
Database model for video generation jobs.
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime

from app.core.database import Base


class VideoJob(Base):
    """Video generation job model."""

    __tablename__ = "video_jobs"

    id = Column(String, primary_key=True)  # vjob_xxxx format

    # Request
    prompt = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
    duration_seconds = Column(Integer, default=6)

    # Provider
    provider = Column(String, nullable=False, default="replicate")
    provider_job_id = Column(String, nullable=True, unique=True, index=True)

    # Status: pending, processing, completed, failed
    status = Column(String, default="pending", index=True, nullable=False)
    error_text = Column(Text, nullable=True)

    # Result
    result_url = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
