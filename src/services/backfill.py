"""
Ledger backfill: index objects that reached the object store but never got
a ledger row (for example when the insert failed after a successful upload).
"""

import logging
from datetime import datetime, timezone

from src.core.storage import GENERATED_PREFIX, R2Storage
from src.services.ledger_client import CloudLedgerClient

logger = logging.getLogger(__name__)


async def backfill_ledger(storage: R2Storage, ledger: CloudLedgerClient, owner_id: str) -> int:
    """Insert a ledger row for every ``generated/{owner_id}/`` object missing one."""
    prefix = f"{GENERATED_PREFIX}/{owner_id}/"
    logger.info(f"Starting ledger backfill for {owner_id}")

    objects = await storage.list_keys(prefix)
    if not objects:
        logger.info(f"No objects under {prefix}")
        return 0

    indexed = await ledger.list_indexed_keys(owner_id)
    logger.info(f"Found {len(objects)} object(s), {len(indexed)} already indexed")

    added = 0
    for obj in objects:
        key = obj["key"]
        if key in indexed:
            continue
        created_at = obj.get("last_modified") or datetime.now(timezone.utc)
        try:
            await ledger.save_generated_image(owner_id, key, created_at=created_at)
        except Exception as e:
            logger.error(f"Failed to index {key}: {e}")
            continue
        indexed.add(key)
        added += 1

    logger.info(f"Backfill complete for {owner_id}: added {added} record(s)")
    return added
