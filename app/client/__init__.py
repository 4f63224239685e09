# Client package - API client and status polling
from app.client.errors import (
    ClientError,
    GenerationRequestError,
    GenerationFailedError,
    JobNotFoundError,
    PollTimeoutError,
)
from app.client.poller import StatusPoller
from app.client.video_client import VideoAdClient

__all__ = [
    "ClientError",
    "GenerationRequestError",
    "GenerationFailedError",
    "JobNotFoundError",
    "PollTimeoutError",
    "StatusPoller",
    "VideoAdClient",
]
