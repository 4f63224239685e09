# Services package - business logic and external integrations
from app.services.video_provider import VideoProvider, ImmediateResult, DeferredHandle, ProviderStatus
from app.services.video_jobs import VideoJobService
from app.services.storage import StorageService

__all__ = [
    "VideoProvider",
    "ImmediateResult",
    "DeferredHandle",
    "ProviderStatus",
    "VideoJobService",
    "StorageService",
]
