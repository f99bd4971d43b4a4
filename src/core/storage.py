"""
Async Cloudflare R2 object store client (S3-compatible).

Uses aioboto3 so uploads and URL signing never block the event loop.
Generated images live under ``generated/{owner_id}/{timestamp_ms}_{random}.{ext}``.
"""

import logging
import secrets
import time
from typing import Optional

import aioboto3
from botocore.config import Config as BotoConfig

from src.core.config import StorageConfig
from src.core.errors import StorageNotConfiguredError

logger = logging.getLogger(__name__)

GENERATED_PREFIX = "generated"

_CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def build_object_key(owner_id: str, ext: str = "jpg", timestamp_ms: Optional[int] = None) -> str:
    """Build a fresh key in the ``generated/{owner_id}/...`` namespace."""
    if not owner_id:
        raise ValueError("owner_id is required to build an object key")
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    suffix = secrets.token_hex(4)
    return f"{GENERATED_PREFIX}/{owner_id}/{ts}_{suffix}.{ext.lstrip('.')}"


def extension_for(content_type: str) -> str:
    return _CONTENT_TYPE_EXTENSIONS.get(content_type.lower(), "jpg")


class R2Storage:
    """Async wrapper around Cloudflare R2 (S3-compatible) using aioboto3."""

    def __init__(
        self,
        account_id: str,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
    ):
        self.bucket_name = bucket_name
        self.endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"
        self._session = aioboto3.Session()
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key

    @classmethod
    def from_config(cls, config: StorageConfig) -> "R2Storage":
        """Build a client from config. Raises StorageNotConfiguredError when incomplete."""
        if not config.validate():
            raise StorageNotConfiguredError()
        return cls(
            account_id=config.account_id,
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
            bucket_name=config.bucket_name,
        )

    def _client(self):
        """Return an async context-manager S3 client."""
        return self._session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
            region_name="auto",
            config=BotoConfig(signature_version="s3v4"),
        )

    async def put(
        self, key: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Upload raw bytes to R2. Returns the key."""
        async with self._client() as client:
            await client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        logger.debug(f"Uploaded {len(data)} bytes to {key}")
        return key

    async def sign(self, key: str, ttl_seconds: int = 3600) -> str:
        """Generate a presigned GET URL valid for ``ttl_seconds``."""
        async with self._client() as client:
            url = await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        return url

    async def delete(self, key: str) -> None:
        """Delete a single object. No error if missing."""
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket_name, Key=key)

    async def list_keys(self, prefix: str) -> list[dict]:
        """List objects under a prefix as ``{"key", "last_modified"}`` dicts."""
        objects: list[dict] = []
        async with self._client() as client:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(
                Bucket=self.bucket_name, Prefix=prefix
            ):
                for obj in page.get("Contents", []):
                    objects.append(
                        {"key": obj["Key"], "last_modified": obj.get("LastModified")}
                    )
        logger.debug(f"Listed {len(objects)} objects under prefix {prefix}")
        return objects


def is_r2_configured() -> bool:
    """Check whether all R2 env vars are set (sync, no I/O)."""
    return StorageConfig().validate()
