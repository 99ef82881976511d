"""
S3 connection for storage operations.

Wraps a lazily created boto3 client. boto3 is blocking, so every call is pushed
onto a worker thread with ``asyncio.to_thread``; local file writes go through
aiofiles.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import aiofiles
import boto3
from botocore.exceptions import ClientError

from shipflow.connections.storage import BaseStorageConnection, ObjectInfo, ObjectPage
from shipflow.exceptions import ConfigurationError, ObjectNotFoundError, StorageError
from shipflow.utils.logging import get_logger

logger = get_logger("shipflow.connections.s3")

CHUNK_SIZE = 256 * 1024

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code")
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


class S3Connection(BaseStorageConnection):
    """
    S3 connection wrapper for storage operations.

    Supports AWS credentials from config, environment, or IAM role.

    Config example:
        storage:
          type: s3
          bucket: my-bucket
          region: ap-south-1
          access_key_id: AKIA...   # Optional, uses env/IAM if not set
          secret_access_key: ...   # Optional
          session_token: ...       # Optional (for temp creds)
          endpoint_url: ...        # Optional (for S3-compatible services)
          base_path: sites         # Optional prefix for all operations
    """

    def __init__(self, name: str, config: dict[str, Any], *, client: Any = None):
        super().__init__(name, config)
        self._client = client
        if not self.config.get("bucket"):
            raise ConfigurationError(
                f"S3 connection '{name}' requires 'bucket' in config. " f"Example: storage.bucket = 'my-bucket'"
            )

    @property
    def bucket(self) -> str:
        """Get S3 bucket name from config."""
        return str(self.config["bucket"])

    @property
    def region(self) -> Optional[str]:
        """Get AWS region from config."""
        return self.config.get("region")

    @property
    def endpoint_url(self) -> Optional[str]:
        """Get custom endpoint URL (for S3-compatible services like MinIO)."""
        return self.config.get("endpoint_url")

    def _get_client_kwargs(self) -> dict[str, Any]:
        """Build kwargs for boto3 client initialization."""
        kwargs: dict[str, Any] = {}

        if self.region:
            kwargs["region_name"] = self.region

        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        # Explicit credentials from config (override env/IAM)
        access_key = self.config.get("access_key_id")
        secret_key = self.config.get("secret_access_key")
        session_token = self.config.get("session_token")

        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
            if session_token:
                kwargs["aws_session_token"] = session_token

        return kwargs

    @property
    def client(self):
        """
        Get boto3 S3 client (lazy initialization).

        Returns:
            boto3.client('s3') instance
        """
        if self._client is None:
            kwargs = self._get_client_kwargs()
            if "aws_access_key_id" in kwargs:
                logger.info("Using explicitly provided AWS credentials")
            else:
                logger.warning("No explicit credentials found. Using AWS credential provider chain.")
            self._client = boto3.client("s3", **kwargs)
        return self._client

    async def list_objects_page(self, prefix: str, continuation_token: str | None = None) -> ObjectPage:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Prefix": self._full_key(prefix)}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        try:
            response = await asyncio.to_thread(self.client.list_objects_v2, **kwargs)
        except ClientError as e:
            raise StorageError(f"Cannot list s3://{self.bucket}/{kwargs['Prefix']}: {e}") from e

        objects = [
            ObjectInfo(key=self._relative_key(obj["Key"]), size=int(obj.get("Size", 0)))
            for obj in response.get("Contents", [])
        ]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ObjectPage(objects=objects, next_token=next_token)

    async def head_object(self, key: str) -> int:
        full_key = self._full_key(key)
        try:
            response = await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=full_key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(full_key) from e
            raise StorageError(f"S3 request failed for '{full_key}': {e}") from e
        return int(response.get("ContentLength", 0))

    async def put_file(
        self,
        local_path: str | Path,
        key: str,
        *,
        size: int | None = None,
        content_type: str | None = None,
    ) -> None:
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        # upload_file streams from disk and switches to multipart for large files
        await asyncio.to_thread(
            self.client.upload_file,
            str(local_path),
            self.bucket,
            self._full_key(key),
            ExtraArgs=extra_args or None,
        )

    async def download_file(self, key: str, local_path: str | Path) -> int:
        full_key = self._full_key(key)
        try:
            response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=full_key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(full_key) from e
            raise StorageError(f"S3 request failed for '{full_key}': {e}") from e

        body = response["Body"]
        written = 0
        try:
            async with aiofiles.open(local_path, "wb") as f:
                while True:
                    chunk = await asyncio.to_thread(body.read, CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
        finally:
            body.close()
        return written

    async def get_object(self, key: str) -> bytes:
        full_key = self._full_key(key)
        try:
            response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=full_key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(full_key) from e
            raise StorageError(f"S3 request failed for '{full_key}': {e}") from e
        body = response["Body"]
        try:
            return await asyncio.to_thread(body.read)
        finally:
            body.close()

    async def close(self) -> None:
        """Drop the client; boto3 clients need no explicit closing."""
        self._client = None
