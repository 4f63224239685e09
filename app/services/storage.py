"""
Storage Service
Copies finished videos into our own storage - local filesystem or S3.
"""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from app.core.config import settings
from app.core.errors import StorageError

logger = logging.getLogger(__name__)


class StorageService:
    """Service for storing generated videos."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.use_local = settings.USE_LOCAL_STORAGE
        self._transport = transport

        if self.use_local:
            self.base_path = Path(settings.LOCAL_STORAGE_PATH)
            self.base_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Using local storage: {self.base_path}")
        else:
            import boto3
            from botocore.config import Config
            self.s3 = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT,
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
                config=Config(signature_version="s3v4"),
            )
            self.bucket = settings.S3_BUCKET
            logger.info(f"Using S3 bucket: {self.bucket}")

    @staticmethod
    def video_path() -> str:
        """Storage key for a new video, e.g. videos/1718000000000-1a2b3c.mp4"""
        return f"videos/{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}.mp4"

    async def mirror_video(self, source_url: str) -> str:
        """
        Download a provider video and store it.

        Returns:
            Public URL of the stored copy
        """
        try:
            async with httpx.AsyncClient(timeout=120.0, transport=self._transport, follow_redirects=True) as client:
                response = await client.get(source_url)
                response.raise_for_status()
                data = response.content
        except httpx.HTTPError as e:
            raise StorageError(f"Could not download video from provider: {e}") from e

        path = self.video_path()
        try:
            url = await self.upload_bytes(data, path, "video/mp4")
        except Exception as e:
            raise StorageError(f"Could not upload video to storage: {e}") from e

        logger.info(f"Stored video ({len(data)} bytes) at {path}")
        return url

    async def upload_bytes(self, data: bytes, path: str, content_type: str = "video/mp4") -> str:
        """Upload bytes and return URL."""
        if self.use_local:
            return await self._upload_local(data, path)
        return await self._upload_s3(data, path, content_type)

    async def _upload_local(self, data: bytes, path: str) -> str:
        """Save file to local filesystem."""
        file_path = self.base_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "wb") as f:
            f.write(data)

        return f"{settings.PUBLIC_FILES_URL.rstrip('/')}/{path}"

    async def _upload_s3(self, data: bytes, path: str, content_type: str) -> str:
        """Upload to S3."""
        self.s3.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        if settings.S3_ENDPOINT:
            return f"{settings.S3_ENDPOINT.rstrip('/')}/{self.bucket}/{path}"
        return f"https://{self.bucket}.s3.{settings.S3_REGION}.amazonaws.com/{path}"

    async def get_file(self, path: str) -> bytes:
        """Read a stored file (local storage only)."""
        if not self.use_local:
            raise FileNotFoundError(path)
        file_path = (self.base_path / path).resolve()
        if self.base_path.resolve() not in file_path.parents or not file_path.is_file():
            raise FileNotFoundError(path)
        return file_path.read_bytes()


def imagekit_url(stored_url: str) -> Optional[str]:
    """CDN URL for a stored video, when ImageKit is configured."""
    if not settings.IMAGEKIT_BASE_URL or "/videos/" not in stored_url:
        return None
    key = stored_url[stored_url.index("/videos/") + 1:]
    return f"{settings.IMAGEKIT_BASE_URL.rstrip('/')}/{key}"
