"""S3 object storage.

boto3 is blocking, so every call runs in a worker thread and goes through the
shared retry policy. Missing keys surface as NotFound, everything else that
keeps failing as StorageFailure.
"""

from __future__ import annotations

import asyncio
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from docgen.core.config import settings
from docgen.core.errors import NotFound, StorageFailure
from docgen.core.retry import call_with_retry
from docgen.adapters.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}


def _is_missing(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") in _MISSING_CODES


class S3ObjectStorage(ObjectStorage):
    def __init__(self, region: str | None = None, endpoint_url: str | None = None):
        self.region = region or settings.AWS_REGION
        logger.info("Connecting to S3 (region: %s)", self.region)
        self.s3_client = boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=endpoint_url or settings.S3_ENDPOINT_URL,
            config=Config(
                connect_timeout=settings.T_STORAGE,
                read_timeout=settings.T_STORAGE,
                # retries are handled by call_with_retry
                retries={"max_attempts": 1, "mode": "standard"},
                signature_version="s3v4",
            ),
        )

    async def _run(self, what: str, fn, *args, **kwargs):
        return await call_with_retry(
            lambda: asyncio.to_thread(fn, *args, **kwargs),
            unavailable=StorageFailure,
            what=what,
        )

    async def get(self, bucket: str, key: str) -> bytes:
        def _get():
            try:
                resp = self.s3_client.get_object(Bucket=bucket, Key=key)
            except ClientError as e:
                if _is_missing(e):
                    raise NotFound(f"Object not found: s3://{bucket}/{key}") from e
                raise
            return resp["Body"].read()

        return await self._run("s3 get", _get)

    async def put(self, bucket: str, key: str, data: bytes, content_type: str, metadata: dict | None = None) -> None:
        await self._run(
            "s3 put",
            self.s3_client.put_object,
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata={k: str(v) for k, v in (metadata or {}).items()},
        )
        logger.info("stored s3://%s/%s (%d bytes)", bucket, key, len(data))

    async def exists(self, bucket: str, key: str) -> bool:
        def _head():
            try:
                self.s3_client.head_object(Bucket=bucket, Key=key)
                return True
            except ClientError as e:
                if _is_missing(e):
                    return False
                raise

        return await self._run("s3 head", _head)

    async def presign_get(self, bucket: str, key: str, expires_in: int) -> str:
        return await self._run(
            "s3 presign get",
            self.s3_client.generate_presigned_url,
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    async def presign_put(self, bucket: str, key: str, content_type: str, expires_in: int) -> str:
        return await self._run(
            "s3 presign put",
            self.s3_client.generate_presigned_url,
            "put_object",
            Params={"Bucket": bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

