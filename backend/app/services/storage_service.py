"""
Storage Service - Stores uploaded guides, question images and reports.

Two backends:
- local: files under UPLOAD_ROOT, written with aiofiles
- s3: AWS S3 through boto3, with retry logic for transient failures
"""

import boto3
from botocore.exceptions import ClientError
from typing import Optional, List
from pathlib import Path
from functools import wraps
import asyncio
import uuid
import time

import aiofiles
import aiofiles.os

from app.core.config import settings
from app.core.exceptions import (
    StorageError, S3UploadError, InvalidFileTypeError, FileTooLargeError,
)
from app.core.logging_config import logger


def retry_with_backoff(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0):
    """
    Decorator for retry logic with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (ClientError, ConnectionError, TimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(f"[S3-Retry] Attempt {attempt + 1}/{max_retries} failed: {e}. Retrying in {delay:.1f}s...")
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"[S3-Retry] All {max_retries} attempts failed: {e}")
            raise last_exception

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (ClientError, ConnectionError, TimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(f"[S3-Retry] Attempt {attempt + 1}/{max_retries} failed: {e}. Retrying in {delay:.1f}s...")
                        time.sleep(delay)
                    else:
                        logger.error(f"[S3-Retry] All {max_retries} attempts failed: {e}")
            raise last_exception

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper
    return decorator


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


class StorageService:
    """Unified storage service over the local filesystem or S3"""

    def __init__(self, mode: Optional[str] = None, root: Optional[str] = None, bucket: Optional[str] = None):
        self.mode = (mode or settings.STORAGE_MODE).lower()
        self.root = Path(root or settings.UPLOAD_ROOT)
        self._bucket_name = bucket or settings.S3_BUCKET_NAME
        self._client = None
        logger.info(f"StorageService initialized in '{self.mode}' mode")

    @property
    def is_s3(self) -> bool:
        return self.mode == "s3"

    def _get_client(self):
        """Lazy initialization of the S3 client"""
        if self._client is None:
            if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                self._client = boto3.client(
                    's3',
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    region_name=settings.AWS_REGION
                )
            else:
                # IAM role credentials (ECS/EC2)
                self._client = boto3.client('s3', region_name=settings.AWS_REGION)
                logger.info("S3 client using IAM role credentials")
        return self._client

    # ==================== VALIDATION ====================

    @staticmethod
    def validate_upload(filename: str, size: int, allowed_extensions: List[str], max_size: Optional[int] = None) -> str:
        """Check extension and size, returning the normalized extension"""
        ext = file_extension(filename)
        if ext not in allowed_extensions:
            raise InvalidFileTypeError(ext or filename, allowed_extensions)
        limit = max_size or settings.MAX_UPLOAD_SIZE
        if size > limit:
            raise FileTooLargeError(size, limit)
        return ext

    @staticmethod
    def generate_key(folder: str, filename: str) -> str:
        """Format: {folder}/{uuid}{ext}"""
        return f"{folder.strip('/')}/{uuid.uuid4().hex}{file_extension(filename)}"

    def _local_path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    # ==================== OPERATIONS ====================

    async def save(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        """Store content under key and return the key"""
        if self.is_s3:
            await self._upload_to_s3(key, content, content_type)
        else:
            path = self._local_path(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        logger.info(f"[Storage] Saved {key} ({len(content)} bytes)")
        return key

    @retry_with_backoff(max_retries=3, base_delay=0.5)
    async def _upload_to_s3(self, key: str, content: bytes, content_type: str) -> None:
        client = self._get_client()
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: client.put_object(
                    Bucket=self._bucket_name, Key=key, Body=content, ContentType=content_type
                )
            )
        except ClientError as e:
            logger.error(f"[Storage] S3 upload failed for {key}: {e}")
            raise

    async def read(self, key: str) -> bytes:
        """Read the stored content for key"""
        if self.is_s3:
            return await self._download_from_s3(key)

        path = self._local_path(key)
        if not path.exists():
            raise StorageError(f"File not found: {key}")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    @retry_with_backoff(max_retries=3, base_delay=0.5)
    async def _download_from_s3(self, key: str) -> bytes:
        client = self._get_client()
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(
            None, lambda: client.get_object(Bucket=self._bucket_name, Key=key)
        )
        return response['Body'].read()

    async def delete(self, key: str) -> bool:
        """Delete key. Returns False when nothing was stored there."""
        if self.is_s3:
            client = self._get_client()
            loop = asyncio.get_event_loop()
            try:
                await loop.run_in_executor(
                    None, lambda: client.delete_object(Bucket=self._bucket_name, Key=key)
                )
            except ClientError as e:
                raise StorageError(f"Failed to delete {key}: {e}")
            return True

        path = self._local_path(key)
        if not path.exists():
            return False
        await aiofiles.os.remove(path)
        logger.info(f"[Storage] Deleted {key}")
        return True

    def get_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Presigned URL on S3, the static uploads path locally"""
        if not self.is_s3:
            return f"/uploads/{key}"
        try:
            return self._get_client().generate_presigned_url(
                'get_object',
                Params={'Bucket': self._bucket_name, 'Key': key},
                ExpiresIn=expires_in or settings.STORAGE_URL_EXPIRY
            )
        except ClientError as e:
            raise S3UploadError(key, f"Could not presign URL: {e}")

    def public_url(self, key: str) -> str:
        """Non-expiring URL, for content referenced from other rows (question images)"""
        if not self.is_s3:
            return f"/uploads/{key}"
        return f"https://{self._bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"


# Singleton instance
storage_service = StorageService()
