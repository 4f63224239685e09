"""
Client Errors
Raised by the API client and status poller.
"""

from typing import Optional


class ClientError(Exception):
    """Base class for client-side errors."""


class GenerationRequestError(ClientError):
    """The generate endpoint rejected the request."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def is_quota_error(self) -> bool:
        return self.status_code in (402, 429)


class JobNotFoundError(ClientError):
    """The server does not know the job id."""


class GenerationFailedError(ClientError):
    """The job reached the failed state."""

    def __init__(self, job_id: str, error_text: Optional[str]):
        super().__init__(f"Job {job_id} failed: {error_text or 'unknown error'}")
        self.job_id = job_id
        self.error_text = error_text


class PollTimeoutError(ClientError):
    """The poller gave up before the job finished."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Job {job_id} still running after {attempts} status checks")
        self.job_id = job_id
        self.attempts = attempts
