"""
Local record cache: per-owner partitions of generation records.

Partitions are JSON arrays stored under ``analyses`` (guest) or
``analyses_<owner_id>``; preferences live next to them under
``preferences[_<owner_id>]``. Each partition is kept newest-first and
capped at ``max_records``.

Reads are forgiving (a broken partition reads as empty, a broken entry is
skipped). Writes raise RecordStorageError.
"""

import asyncio
import json
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from src.core.config import DEFAULT_MAX_RECORDS_STORED
from src.core.errors import DuplicateRecordError, RecordStorageError
from src.core.file_verifier import LocalFileVerifier, StorageUsage
from src.core.records import GenerationRecord, sort_newest_first
from src.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

ANALYSES_KEY = "analyses"
PREFERENCES_KEY = "preferences"


def records_key(owner_id: Optional[str] = None) -> str:
    return f"{ANALYSES_KEY}_{owner_id}" if owner_id else ANALYSES_KEY


def preferences_key(owner_id: Optional[str] = None) -> str:
    return f"{PREFERENCES_KEY}_{owner_id}" if owner_id else PREFERENCES_KEY


def _decode_records(raw: bytes, key: str) -> list[GenerationRecord]:
    try:
        items = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        logger.error(f"Partition {key} is not valid JSON, treating as empty: {e}")
        return []
    if not isinstance(items, list):
        logger.error(f"Partition {key} is not a JSON array, treating as empty")
        return []

    records: list[GenerationRecord] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        try:
            record = GenerationRecord.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping corrupt record #{index} in {key}: {e.error_count()} error(s)")
            continue
        if record.id in seen:
            continue
        seen.add(record.id)
        records.append(record)
    return records


class LocalRecordCache:
    def __init__(
        self,
        store: KeyValueStore,
        max_records: int = DEFAULT_MAX_RECORDS_STORED,
        verifier: Optional[LocalFileVerifier] = None,
    ):
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self._store = store
        self.max_records = max_records
        self._verifier = verifier or LocalFileVerifier()
        # Serializes read-modify-write sequences on this device
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self, owner_id: Optional[str] = None) -> list[GenerationRecord]:
        """Records for one partition, newest first. Never raises."""
        key = records_key(owner_id)
        try:
            raw = await self._store.get(key)
        except Exception as e:
            logger.error(f"Error loading records from {key}: {e}")
            return []
        if not raw:
            return []
        return _decode_records(raw, key)

    async def _load_strict(self, owner_id: Optional[str]) -> list[GenerationRecord]:
        """Like load(), but storage errors raise so a write never clobbers unread data."""
        key = records_key(owner_id)
        try:
            raw = await self._store.get(key)
        except Exception as e:
            raise RecordStorageError(f"Failed to read records from {key}") from e
        return _decode_records(raw, key) if raw else []

    async def _collect_all(self, strict: bool) -> list[GenerationRecord]:
        try:
            keys = await self._store.list_keys()
        except Exception as e:
            if strict:
                raise RecordStorageError("Failed to list record partitions") from e
            logger.error(f"Error listing record partitions: {e}")
            return []

        all_records: list[GenerationRecord] = []
        for key in keys:
            if key != ANALYSES_KEY and not key.startswith(f"{ANALYSES_KEY}_"):
                continue
            try:
                raw = await self._store.get(key)
            except Exception as e:
                if strict:
                    raise RecordStorageError(f"Failed to read records from {key}") from e
                logger.error(f"Error loading records from {key}: {e}")
                continue
            if raw:
                all_records.extend(_decode_records(raw, key))
        return sort_newest_first(all_records)

    async def load_all(self) -> list[GenerationRecord]:
        """Every record across every partition, newest first (admin listing)."""
        return await self._collect_all(strict=False)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _normalize(
        self, records: Iterable[GenerationRecord], owner_id: Optional[str]
    ) -> list[GenerationRecord]:
        """Dedupe by id (first wins), stamp the partition owner and apply the cap."""
        normalized: list[GenerationRecord] = []
        seen: set[str] = set()
        for record in records:
            if record.id in seen:
                continue
            seen.add(record.id)
            if record.owner_id != owner_id:
                record = record.with_owner(owner_id)
            normalized.append(record)
        return normalized[: self.max_records]

    async def _write(self, records: list[GenerationRecord], owner_id: Optional[str]) -> None:
        key = records_key(owner_id)
        payload = json.dumps([r.model_dump(mode="json") for r in records]).encode("utf-8")
        try:
            await self._store.set(key, payload)
        except Exception as e:
            logger.error(f"Error saving records to {key}: {e}")
            raise RecordStorageError("Failed to save records") from e

    async def persist(
        self, records: Iterable[GenerationRecord], owner_id: Optional[str] = None
    ) -> list[GenerationRecord]:
        """Replace a partition. ``records`` must already be newest-first."""
        normalized = self._normalize(records, owner_id)
        async with self._write_lock:
            await self._write(normalized, owner_id)
        return normalized

    async def add(
        self, record: GenerationRecord, owner_id: Optional[str] = None
    ) -> GenerationRecord:
        """
        Insert a new record at the front, evicting the oldest beyond the cap.

        Stored records are never replaced: an id already in the partition
        raises DuplicateRecordError.
        """
        async with self._write_lock:
            current = await self._load_strict(owner_id)
            if any(r.id == record.id for r in current):
                raise DuplicateRecordError(record.id)
            updated = self._normalize([record, *current], owner_id)
            await self._write(updated, owner_id)
        evicted = len(current) + 1 - len(updated)
        if evicted > 0:
            logger.info(f"Evicted {evicted} oldest record(s) from {records_key(owner_id)}")
        return updated[0]

    async def merge(
        self, incoming: Iterable[GenerationRecord], owner_id: Optional[str] = None
    ) -> int:
        """
        Merge new records into a partition in one write.

        Ids already stored are left alone. The result is re-sorted by
        ``created_at`` (newest first) and capped. Returns how many incoming
        records are in the written partition.
        """
        async with self._write_lock:
            current = await self._load_strict(owner_id)
            known = {r.id for r in current}
            fresh = [r for r in incoming if r.id not in known]
            if not fresh:
                return 0
            merged = self._normalize(sort_newest_first([*current, *fresh]), owner_id)
            await self._write(merged, owner_id)
        fresh_ids = {r.id for r in fresh}
        return sum(1 for r in merged if r.id in fresh_ids)

    async def discard(self, record_ids: Iterable[str], owner_id: Optional[str] = None) -> int:
        """Remove records by id from the current stored partition. Returns how many went."""
        ids = set(record_ids)
        if not ids:
            return 0
        async with self._write_lock:
            current = await self._load_strict(owner_id)
            kept = [r for r in current if r.id not in ids]
            removed = len(current) - len(kept)
            if removed:
                await self._write(kept, owner_id)
        return removed

    async def delete(self, record_id: str, owner_id: Optional[str] = None) -> bool:
        """
        Delete one record and its on-device media files.

        File removal is best-effort; the record itself is always removed.
        Returns False when no record had that id.
        """
        async with self._write_lock:
            current = await self._load_strict(owner_id)
            target = next((r for r in current if r.id == record_id), None)
            if target is None:
                return False

            for ref in (target.primary_media_ref, target.result_media_ref):
                if not ref:
                    continue
                try:
                    await self._verifier.delete_local(ref)
                except Exception as e:
                    logger.warning(f"Error deleting media file for record {record_id}: {e}")

            await self._write([r for r in current if r.id != record_id], owner_id)
        logger.info(f"Deleted record {record_id} from {records_key(owner_id)}")
        return True

    async def migrate_guest_into(self, owner_id: str) -> int:
        """
        Move guest records into ``owner_id``'s partition.

        Records whose id already exists for the owner are not duplicated.
        The guest partition is removed only after the merged owner partition
        is written, so a failed write leaves both partitions intact. Running
        it again with an empty guest partition does nothing. Returns the
        number of records moved.
        """
        if not owner_id:
            raise ValueError("owner_id is required for migration")

        async with self._write_lock:
            guest = await self._load_strict(None)
            if not guest:
                return 0

            owned = await self._load_strict(owner_id)
            owned_ids = {r.id for r in owned}
            migrated = [r.with_owner(owner_id) for r in guest if r.id not in owned_ids]

            merged = self._normalize(sort_newest_first([*owned, *migrated]), owner_id)
            await self._write(merged, owner_id)
            try:
                await self._store.remove_many([records_key(None)])
            except Exception as e:
                raise RecordStorageError("Failed to remove guest records after migration") from e

        logger.info(
            f"Migrated {len(migrated)} guest record(s) into {records_key(owner_id)} "
            f"({len(guest) - len(migrated)} already present)"
        )
        return len(migrated)

    # ------------------------------------------------------------------
    # Preferences and account cleanup
    # ------------------------------------------------------------------

    async def get_preferences(self, owner_id: Optional[str] = None) -> dict[str, Any]:
        key = preferences_key(owner_id)
        try:
            raw = await self._store.get(key)
            prefs = json.loads(raw) if raw else {}
        except Exception as e:
            logger.error(f"Error loading preferences from {key}: {e}")
            return {}
        return prefs if isinstance(prefs, dict) else {}

    async def save_preferences(
        self, preferences: dict[str, Any], owner_id: Optional[str] = None
    ) -> None:
        key = preferences_key(owner_id)
        try:
            await self._store.set(key, json.dumps(preferences).encode("utf-8"))
        except Exception as e:
            logger.error(f"Error saving preferences to {key}: {e}")
            raise RecordStorageError("Failed to save preferences") from e

    async def clear_owner_data(self, owner_id: str) -> None:
        """Drop an owner's records and preferences (account deletion)."""
        try:
            await self._store.remove_many([records_key(owner_id), preferences_key(owner_id)])
        except Exception as e:
            logger.error(f"Error clearing data for {owner_id}: {e}")
            raise RecordStorageError("Failed to clear user data") from e

    # ------------------------------------------------------------------
    # Media files
    # ------------------------------------------------------------------

    async def cleanup_orphaned_files(self) -> int:
        """
        Delete image files in the media root that no stored record references.

        Every partition counts, since all owners share one media root. If any
        partition cannot be read nothing is deleted. Returns the number of
        files removed.
        """
        async with self._write_lock:
            records = await self._collect_all(strict=True)
            refs = [
                ref
                for r in records
                for ref in (r.primary_media_ref, r.result_media_ref)
                if ref
            ]
            removed = await self._verifier.remove_unreferenced(refs)
        logger.info(f"Removed {len(removed)} orphaned media file(s)")
        return len(removed)

    async def storage_info(self) -> StorageUsage:
        """File count and total size of the on-device media."""
        return await self._verifier.storage_usage()
