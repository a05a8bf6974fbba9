"""
Storage backends for generated and source image bytes
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from listing_studio.core.config import settings
from listing_studio.core.exceptions import ConfigurationError, ExternalServiceError

logger = structlog.get_logger()


def is_url(locator: str) -> bool:
    return locator.startswith("http://") or locator.startswith("https://")


class Storage(ABC):
    """Stores bytes under a key and hands back a locator"""

    @abstractmethod
    def store(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        pass

    @abstractmethod
    def read(self, locator: str) -> bytes:
        pass

    @abstractmethod
    def public_url(self, locator: str) -> str:
        pass

    @abstractmethod
    def delete(self, locator: str) -> None:
        pass


class LocalStorage(Storage):
    """Files under UPLOAD_DIR, served by the API at /uploads"""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def store(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        file_path = self.root / key
        file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            file_path.write_bytes(data)
        except OSError:
            # Clean up partial file on error
            if file_path.exists():
                file_path.unlink()
            raise
        logger.info("Stored file locally", key=key, size=len(data))
        return key

    def read(self, locator: str) -> bytes:
        return (self.root / locator.lstrip("/")).read_bytes()

    def public_url(self, locator: str) -> str:
        if is_url(locator):
            return locator
        return f"{self.base_url}/uploads/{locator.lstrip('/')}"

    def delete(self, locator: str) -> None:
        file_path = self.root / locator.lstrip("/")
        if file_path.exists():
            file_path.unlink()
            logger.info("Deleted local file", key=locator)


class S3Storage(Storage):
    """Objects in a public-read S3 bucket; the locator is the object key"""

    def __init__(self, bucket: Optional[str] = None, region: Optional[str] = None, client=None):
        self.bucket = bucket or settings.AWS_S3_BUCKET_NAME
        self.region = region or settings.AWS_REGION
        if not self.bucket:
            raise ConfigurationError("AWS_S3_BUCKET_NAME not configured")
        if client is None:
            import boto3
            client = boto3.client("s3", region_name=self.region)
        self.client = client

    def store(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        from botocore.exceptions import BotoCoreError, ClientError
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload failed", key=key, error=str(e))
            raise ExternalServiceError(f"S3 upload failed: {e}", service="storage")
        logger.info("Uploaded object to S3", bucket=self.bucket, key=key, size=len(data))
        return key

    def read(self, locator: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(locator))
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise ExternalServiceError(f"S3 download failed: {e}", service="storage")

    def public_url(self, locator: str) -> str:
        if is_url(locator):
            return locator
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{locator.lstrip('/')}"

    def delete(self, locator: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(locator))
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 delete failed", key=locator, error=str(e))

    def _key(self, locator: str) -> str:
        if is_url(locator):
            # https://bucket.s3.region.amazonaws.com/<key>
            return locator.split(".amazonaws.com/", 1)[-1]
        return locator.lstrip("/")


_storage: Optional[Storage] = None


def get_storage() -> Storage:
    global _storage
    if _storage is None:
        _storage = S3Storage() if settings.STORAGE_BACKEND == "s3" else LocalStorage()
    return _storage
