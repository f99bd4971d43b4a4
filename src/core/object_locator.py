"""
Object Locator: turns an object-store key into a URL the app can fetch.

Resolution order for a reference:
  1. Signed URL          -> may have expired; recover the key and start over
  2. Plain URL / local / data URI -> returned as-is
  3. Object key          -> public domain URL, cached signed URL, or a fresh
                            signature from the object store

Signing failures return None. Callers must read that as "not resolvable
right now", never as "the object is gone".
"""

import logging
from typing import Optional, Protocol

from src.core.config import SIGNED_URL_CACHE_SECONDS, SIGNED_URL_TTL_SECONDS, StorageConfig
from src.core.expiring_cache import ExpiringCache
from src.core.media_ref import RemoteRef, is_object_key, object_key_from_url, parse_media_ref
from src.core.storage import R2Storage

logger = logging.getLogger(__name__)


class ObjectSigner(Protocol):
    bucket_name: str

    async def sign(self, key: str, ttl_seconds: int = ...) -> str:
        ...


class ObjectLocator:
    def __init__(
        self,
        signer: Optional[ObjectSigner],
        public_domain: Optional[str] = None,
        url_ttl: int = SIGNED_URL_TTL_SECONDS,
        cache_ttl: int = SIGNED_URL_CACHE_SECONDS,
        cache: Optional[ExpiringCache[str, str]] = None,
    ):
        if cache_ttl >= url_ttl:
            raise ValueError("cache_ttl must be shorter than url_ttl")
        self._signer = signer
        self.public_domain = public_domain.rstrip("/") if public_domain else None
        self.url_ttl = url_ttl
        self.cache = cache if cache is not None else ExpiringCache(default_ttl=cache_ttl)

    @classmethod
    def from_config(
        cls, config: StorageConfig, signer: Optional[ObjectSigner] = None
    ) -> "ObjectLocator":
        """
        Build a locator from config.

        A public domain alone is enough; otherwise R2 credentials are required
        and StorageNotConfiguredError is raised when they are missing.
        """
        if signer is None and (config.validate() or not config.public_domain):
            signer = R2Storage.from_config(config)
        return cls(
            signer=signer,
            public_domain=config.public_domain,
            url_ttl=config.signed_url_ttl,
            cache_ttl=config.cache_ttl,
        )

    async def resolve(self, key: Optional[str]) -> Optional[str]:
        if not key:
            return None

        ref = parse_media_ref(key)
        if isinstance(ref, RemoteRef) and ref.is_signed:
            bucket = self._signer.bucket_name if self._signer is not None else None
            object_key = object_key_from_url(ref.url, bucket_name=bucket)
            if object_key is None:
                logger.warning(f"Could not extract object key from signed URL: {ref.url[:80]}")
                return None
            logger.debug(f"Re-resolving signed URL for key {object_key}")
            return await self._resolve_key(object_key)

        if ref is not None or not is_object_key(key):
            return key

        return await self._resolve_key(key)

    async def _resolve_key(self, key: str) -> Optional[str]:
        if self.public_domain:
            return f"{self.public_domain}/{key.lstrip('/')}"

        cached = self.cache.get(key)
        if cached is not None:
            return cached
        # Sweep on a miss so expired keys never accumulate
        self.cache.purge_expired()

        if self._signer is None:
            logger.warning(f"No object store signer available to resolve {key}")
            return None

        try:
            url = await self._signer.sign(key, self.url_ttl)
        except Exception as e:
            logger.warning(f"Failed to sign URL for {key}: {e}")
            return None

        self.cache.set(key, url)
        return url
