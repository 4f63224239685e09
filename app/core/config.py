"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "AdVid API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./advid.db"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:8080"]

    # Video provider (Replicate predictions API)
    PROVIDER_NAME: str = "replicate"
    REPLICATE_API_TOKEN: str = ""
    REPLICATE_API_BASE: str = "https://api.replicate.com/v1"
    REPLICATE_MODEL_VERSION: str = "replicate/video-model:latest"
    PROVIDER_TIMEOUT: float = 60.0
    VIDEO_DEFAULT_DURATION: int = 6

    # Webhooks - provider calls back to PUBLIC_BASE_URL + /api/v1/video/webhook
    PUBLIC_BASE_URL: str = ""
    WEBHOOK_SECRET: str = ""  # whsec_... signing secret from the provider
    WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Result storage
    MIRROR_RESULTS: bool = False
    LOCAL_STORAGE_PATH: str = "./uploads"
    USE_LOCAL_STORAGE: bool = True
    PUBLIC_FILES_URL: str = "http://localhost:8000/files"
    S3_BUCKET: str = ""
    S3_ENDPOINT: Optional[str] = None
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_REGION: str = "us-east-1"
    IMAGEKIT_BASE_URL: str = ""

    # Client-side polling
    POLL_INITIAL_DELAY: float = 1.5
    POLL_INTERVAL: float = 3.0
    POLL_MAX_ATTEMPTS: int = 120

    # Server-side reconciliation sweep
    RECONCILE_INTERVAL: int = 30  # Seconds between sweeps
    RECONCILE_MIN_AGE: int = 60  # Only check jobs processing at least this long
    RECONCILE_BATCH_SIZE: int = 50

    @field_validator('REPLICATE_API_TOKEN', 'WEBHOOK_SECRET', 'S3_SECRET_KEY', mode='before')
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from secrets loaded from the environment."""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def webhook_url(self) -> Optional[str]:
        """Public webhook URL handed to the provider, if the service is reachable."""
        if not self.PUBLIC_BASE_URL:
            return None
        return f"{self.PUBLIC_BASE_URL.rstrip('/')}/api/v1/video/webhook"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
