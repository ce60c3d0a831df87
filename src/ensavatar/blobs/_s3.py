"""S3BlobStore: blob storage on any S3-compatible object store (MinIO, AWS S3).

Uses a ``boto3`` ``s3`` client. boto3 is blocking, so each call runs in a
worker thread via ``asyncio.to_thread``.

Reads and writes may target different buckets: the production deployment
serves from ``BUCKET_NAME`` and populates ``S3_BUCKET``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ensavatar.blobs._store import validate_key
from ensavatar.errors import BlobNotFoundError, BlobStoreError
from ensavatar.types import WEBP_MEDIA_TYPE, CachedImage

if TYPE_CHECKING:
    from ensavatar.config import Settings

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def is_not_found(exc: ClientError) -> bool:
    """Return whether a ClientError means the key does not exist."""
    return str(exc.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES


class S3BlobStore:
    """Blob store backed by an S3 bucket.

    Usage::

        client = boto3.client("s3", endpoint_url="http://localhost:9000")
        store = S3BlobStore(client, "ens-avatar")
        await store.put_blob("64/https%3A%2F%2Fexample.com%2Fa.png", data, media_type="image/webp")
    """

    def __init__(self, client: object, bucket: str, *, output_bucket: str | None = None) -> None:
        """Initialize with a boto3 S3 client, the read bucket and an optional write bucket."""
        self._client = client
        self._bucket = bucket
        self._output_bucket = output_bucket or bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> S3BlobStore:
        """Build a path-style S3 client for the configured endpoint."""
        client = boto3.client(
            "s3",
            endpoint_url=settings.bucket_endpoint_url,
            aws_access_key_id=settings.access_key or None,
            aws_secret_access_key=settings.secret_key or None,
            region_name="us-east-1",
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        return cls(client, settings.bucket_name, output_bucket=settings.output_bucket)

    @property
    def bucket(self) -> str:
        """Return the bucket blobs are read from."""
        return self._bucket

    @property
    def output_bucket(self) -> str:
        """Return the bucket blobs are written to."""
        return self._output_bucket

    def _get(self, key: str) -> CachedImage:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)  # type: ignore[attr-defined]
            body = response["Body"]
            try:
                data = body.read()
            finally:
                body.close()
        except ClientError as exc:
            if is_not_found(exc):
                raise BlobNotFoundError(key) from None
            raise BlobStoreError(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise BlobStoreError(key, str(exc)) from exc
        return CachedImage(data=data, media_type=response.get("ContentType") or WEBP_MEDIA_TYPE)

    def _put(self, key: str, data: bytes, media_type: str) -> None:
        try:
            self._client.put_object(  # type: ignore[attr-defined]
                Bucket=self._output_bucket,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ContentType=media_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise BlobStoreError(key, str(exc)) from exc

    def _has(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)  # type: ignore[attr-defined]
        except ClientError as exc:
            if is_not_found(exc):
                return False
            raise BlobStoreError(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise BlobStoreError(key, str(exc)) from exc
        return True

    async def get_blob(self, key: str) -> CachedImage:
        """Download an object's bytes and content type."""
        return await asyncio.to_thread(self._get, key)

    async def put_blob(self, key: str, data: bytes, *, media_type: str) -> None:
        """Upload bytes with a Content-Type header."""
        validate_key(key)
        await asyncio.to_thread(self._put, key, data, media_type)

    async def has_blob(self, key: str) -> bool:
        """Check whether an object exists."""
        return await asyncio.to_thread(self._has, key)
