import logging
from typing import Any, BinaryIO, Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .base import ResourceKind, StorageError, StorageProviderBase, StoredObject

logger = logging.getLogger(__name__)


class S3StorageProvider(StorageProviderBase):
    """S3-compatible bucket (AWS, MinIO, ...)."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
        timeout_seconds: int = 30,
        client: Any = None,
    ):
        if not bucket:
            raise ValueError("S3 storage config incomplete: set S3_BUCKET")
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region
        self.public_base_url = public_base_url
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 1},
            ),
        )

    def _base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"

    def url_for(self, key: str) -> str:
        return f"{self._base_url()}/{key}"

    def key_for(self, url: str) -> Optional[str]:
        prefix = self._base_url() + "/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return None

    def upload(
        self,
        stream: BinaryIO,
        name: str,
        folder: str,
        kind: ResourceKind = ResourceKind.RAW,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        key = f"{folder.strip('/')}/{name}"
        extra_args = {
            "ContentType": content_type or "application/octet-stream",
            "Metadata": {"resource-kind": kind.value},
        }
        try:
            self._client.upload_fileobj(stream, self.bucket, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed: bucket={self.bucket}, key={key}, error={e}")
            raise StorageError(f"failed to upload to object storage: {e}") from e

        logger.info(f"S3 upload: bucket={self.bucket}, key={key}")
        return StoredObject(url=self.url_for(key), key=key)

    def fetch(self, url: str, timeout: float = 30.0) -> bytes:
        key = self.key_for(url)
        if not key:
            return super().fetch(url, timeout=timeout)
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 fetch failed: key={key}, error={e}")
            raise StorageError(f"failed to fetch from object storage: {e}") from e

    def delete(self, url: str) -> bool:
        key = self.key_for(url)
        if not key:
            return False
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"S3 delete failed: key={key}, error={e}")
            return False
