"""S3 storage gateway for recordings and attachments."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from talktopost.config.settings import S3Config
from talktopost.services import errors
from talktopost.services.aws import create_boto3_client

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class StorageGateway:
    """Blob storage facade; every boto3 call runs in the threadpool."""

    def __init__(self, config: S3Config, client: Any = None) -> None:
        self._config = config
        self._client = client or create_boto3_client("s3", config=config)

    @property
    def recordings_bucket(self) -> str:
        return self._config.recordings_bucket

    @property
    def attachments_bucket(self) -> str:
        return self._config.attachments_bucket

    async def create_upload_target(
        self,
        key: str,
        *,
        bucket: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Return a presigned PUT URL the client uploads the object to."""

        params: dict[str, Any] = {"Bucket": bucket or self.recordings_bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        try:
            return await run_in_threadpool(
                self._client.generate_presigned_url,
                "put_object",
                Params=params,
                ExpiresIn=self._config.upload_url_expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise errors.StorageError(f"Failed to create upload URL: {exc}") from exc

    async def download(self, key: str, *, bucket: str | None = None) -> bytes:
        target_bucket = bucket or self.recordings_bucket

        def _read() -> bytes:
            response = self._client.get_object(Bucket=target_bucket, Key=key)
            return response["Body"].read()

        try:
            return await run_in_threadpool(_read)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                raise errors.NotFound(f"Stored object '{key}' not found") from exc
            raise errors.StorageError(f"Failed to download '{key}': {exc}") from exc
        except BotoCoreError as exc:
            raise errors.StorageError(f"Failed to download '{key}': {exc}") from exc

    async def upload(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        bucket: str | None = None,
    ) -> str:
        if not data:
            raise errors.ValidationError("Upload payload was empty.")
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=bucket or self.recordings_bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise errors.StorageError(f"Failed to upload '{key}': {exc}") from exc
        return key

    async def remove(self, key: str, *, bucket: str | None = None) -> bool:
        """Delete an object; failures are logged and reported as ``False``."""

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=bucket or self.recordings_bucket,
                Key=key,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Failed to remove stored object %s: %s", key, exc)
            return False
        return True

    async def ping(self) -> None:
        try:
            await run_in_threadpool(
                self._client.head_bucket, Bucket=self.recordings_bucket
            )
        except (BotoCoreError, ClientError) as exc:
            raise errors.StorageError(f"Storage unreachable: {exc}") from exc


__all__ = ["StorageGateway"]
