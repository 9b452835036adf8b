"""S3-compatible object storage client for uploaded media and results.

Provides upload() and remove() using boto3 against the storage provider's
S3 endpoint. Calls are blocking; async callers run them in a worker thread.
"""

from __future__ import annotations

import logging
import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from transcript_processor.utils.errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStorageClient:
    """S3-compatible client for a single storage bucket.

    Reads configuration from environment variables:
        STORAGE_ENDPOINT, STORAGE_BUCKET, STORAGE_ACCESS_KEY_ID,
        STORAGE_SECRET_ACCESS_KEY, STORAGE_REGION
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        bucket: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url or os.environ.get("STORAGE_ENDPOINT", "")
        self.bucket = bucket or os.environ.get("STORAGE_BUCKET", "")
        self.access_key_id = access_key_id or os.environ.get(
            "STORAGE_ACCESS_KEY_ID", ""
        )
        self.secret_access_key = secret_access_key or os.environ.get(
            "STORAGE_SECRET_ACCESS_KEY", ""
        )
        self.region = region or os.environ.get("STORAGE_REGION", "us-east-1")

        if not self.endpoint_url:
            raise StorageError("STORAGE_ENDPOINT is required", operation="init")
        if not self.bucket:
            raise StorageError("STORAGE_BUCKET is required", operation="init")

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=self.region,
        )

    def upload(self, path: str, data: bytes, content_type: str = "") -> str:
        """Store an object.

        Args:
            path: Object key within the bucket.
            data: Raw bytes to store.
            content_type: Optional MIME content type.

        Returns:
            The object key, as the stored reference.

        Raises:
            StorageError: If the object cannot be stored.
        """
        try:
            kwargs: dict = {"Bucket": self.bucket, "Key": path, "Body": data}
            if content_type:
                kwargs["ContentType"] = content_type
            self._client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Failed to upload object '{path}': {_error_code(exc)}",
                operation="upload",
            ) from exc
        logger.debug("Uploaded %s (%d bytes)", path, len(data))
        return path

    def remove(self, paths: list[str]) -> None:
        """Delete objects by key. Missing keys are not an error.

        Raises:
            StorageError: If the delete request fails.
        """
        if not paths:
            return
        try:
            response = self._client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": path} for path in paths], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Failed to remove objects {paths}: {_error_code(exc)}",
                operation="remove",
            ) from exc

        errors = response.get("Errors") or []
        if errors:
            failed = ", ".join(e.get("Key", "?") for e in errors)
            raise StorageError(
                f"Failed to remove objects: {failed}", operation="remove"
            )


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "Unknown")
    return str(exc)
