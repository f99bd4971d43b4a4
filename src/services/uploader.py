"""
Backs generated images up to the object store and indexes them in the ledger.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.core.errors import StorageNotConfiguredError
from src.core.storage import R2Storage, build_object_key, extension_for
from src.services.ledger_client import CloudLedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    object_key: str
    ledger_id: Optional[str] = None

    @property
    def indexed(self) -> bool:
        return self.ledger_id is not None


class MediaUploader:
    def __init__(self, storage: Optional[R2Storage], ledger: Optional[CloudLedgerClient]):
        self._storage = storage
        self._ledger = ledger

    async def upload_bytes(
        self,
        owner_id: str,
        data: bytes,
        content_type: str = "image/jpeg",
        prompt: Optional[str] = None,
    ) -> UploadResult:
        """
        Store ``data`` under a new key and record it in the ledger.

        Upload errors raise. A ledger failure only logs: the object exists and
        the backfill can index it later.
        """
        if self._storage is None:
            raise StorageNotConfiguredError()
        if not data:
            raise ValueError("Refusing to upload an empty image")

        key = build_object_key(owner_id, extension_for(content_type))
        await self._storage.put(key, data, content_type)
        logger.info(f"Uploaded {len(data)} bytes for {owner_id} to {key}")

        if self._ledger is None or not self._ledger.is_configured:
            return UploadResult(object_key=key)

        try:
            entry = await self._ledger.save_generated_image(owner_id, key, prompt=prompt)
        except Exception as e:
            logger.error(f"Uploaded {key} but failed to index it in the ledger: {e}")
            return UploadResult(object_key=key)
        return UploadResult(object_key=key, ledger_id=entry.id)
