"""
Reconciler: one consistent view over the local record cache, the cloud
ledger and the object store.

Two independent operations:

get_healed_records(owner)
    The read path. Keeps records whose local file is present, swaps in a
    freshly resolved URL for records whose file vanished but which have a
    cloud copy, and drops records that have neither. Dropping is the only
    destructive step; the cleanup write runs in the background so the read
    returns immediately.

sync_from_cloud(owner)
    Explicit refresh. Pulls the newest ledger entries and inserts the ones
    the local cache doesn't know yet, in a single write. Best effort:
    failures are logged and reported as zero inserted.
"""

import logging
from typing import Optional

from src.core.config import DEFAULT_SYNC_LIMIT
from src.core.file_verifier import LocalFileVerifier
from src.core.media_ref import RemoteRef
from src.core.object_locator import ObjectLocator
from src.core.records import GenerationRecord, LedgerImageEntry
from src.services.background import BackgroundTasks
from src.services.ledger_client import CloudLedgerClient
from src.services.record_cache import LocalRecordCache, records_key

logger = logging.getLogger(__name__)


def _strip_query(ref: str) -> str:
    return ref.split("?", 1)[0].split("#", 1)[0]


def _record_from_ledger(entry: LedgerImageEntry, owner_id: str) -> GenerationRecord:
    return GenerationRecord(
        id=entry.id,
        primary_media_ref=entry.image_url,
        cloud_object_key=entry.image_url,
        has_result=True,
        owner_id=owner_id,
        created_at=entry.created_at,
        prompt=entry.prompt,
    )


class Reconciler:
    def __init__(
        self,
        cache: LocalRecordCache,
        verifier: LocalFileVerifier,
        locator: Optional[ObjectLocator],
        ledger: Optional[CloudLedgerClient],
        background: Optional[BackgroundTasks] = None,
        sync_limit: int = DEFAULT_SYNC_LIMIT,
    ):
        self.cache = cache
        self.verifier = verifier
        self.locator = locator
        self.ledger = ledger
        self.background = background or BackgroundTasks()
        self.sync_limit = sync_limit

    async def _migrate(self, owner_id: str) -> None:
        try:
            await self.cache.migrate_guest_into(owner_id)
        except Exception as e:
            # Guest data stays in place and is retried on the next read
            logger.error(f"Guest migration into {owner_id} failed: {e}")

    async def _resolve(self, key: str) -> Optional[str]:
        if self.locator is None:
            return None
        try:
            return await self.locator.resolve(key)
        except Exception as e:
            logger.warning(f"Object resolution failed for {key}: {e}")
            return None

    async def _heal(self, record: GenerationRecord) -> Optional[GenerationRecord]:
        """Healed copy of ``record``, or None when it can never be displayed."""
        check = await self.verifier.check(record.primary_media_ref)
        if check.exists:
            media = record.primary_media
            if isinstance(media, RemoteRef) and media.is_signed:
                fresh = await self._resolve(media.url)
                if fresh and fresh != media.url:
                    return record.with_primary_ref(fresh)
            return record

        if record.cloud_object_key:
            url = await self._resolve(record.cloud_object_key)
            if url is None:
                logger.info(f"Cloud copy of {record.id} unresolved for now, keeping record")
                return record
            logger.debug(f"Local file missing for {record.id}, using cloud URL")
            return record.with_primary_ref(url)

        logger.warning(f"Removing record {record.id}: no local file and no cloud backup")
        return None

    async def get_healed_records(self, owner_id: Optional[str] = None) -> list[GenerationRecord]:
        """Records for display, newest first. Never raises."""
        if owner_id:
            await self._migrate(owner_id)

        records = await self.cache.load(owner_id)

        healed: list[GenerationRecord] = []
        dropped: list[str] = []
        for record in records:
            result = await self._heal(record)
            if result is None:
                dropped.append(record.id)
            else:
                healed.append(result)

        if dropped:
            # Resolved URLs are not written back; only the removals are
            self.background.spawn(
                self.cache.discard(dropped, owner_id),
                name=f"discard:{records_key(owner_id)}:{len(dropped)}",
            )

        return healed

    async def sync_from_cloud(self, owner_id: str) -> int:
        """Insert ledger entries missing locally. Returns the count inserted, 0 on failure."""
        if not owner_id:
            return 0
        if self.ledger is None or not self.ledger.is_configured:
            logger.debug("Cloud ledger not configured, skipping sync")
            return 0

        try:
            await self._migrate(owner_id)
            entries = await self.ledger.list_generated_images(owner_id, limit=self.sync_limit)
            local = await self.cache.load(owner_id)

            known_ids = {r.id for r in local}
            known_keys = {r.cloud_object_key for r in local if r.cloud_object_key}
            local_refs = [_strip_query(r.primary_media_ref) for r in local]

            new_records: list[GenerationRecord] = []
            for entry in entries:
                key = entry.image_url
                if not key or entry.id in known_ids or key in known_keys:
                    continue
                if any(ref.endswith(key) for ref in local_refs):
                    continue
                new_records.append(_record_from_ledger(entry, owner_id))
                known_ids.add(entry.id)
                known_keys.add(key)

            if not new_records:
                return 0

            inserted = await self.cache.merge(new_records, owner_id)
            logger.info(f"Synced {inserted} record(s) from cloud for {owner_id}")
            return inserted
        except Exception as e:
            logger.error(f"Cloud sync failed for {owner_id}: {e}", exc_info=True)
            return 0
