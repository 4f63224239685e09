# Database models package
from app.models.job import VideoJob

__all__ = [
    "VideoJob",
]
