"""Unit tests for src/services/backfill.py."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from src.services.backfill import backfill_ledger
from tests.helpers import FakeLedger, make_entry

MODIFIED = datetime(2026, 2, 2, tzinfo=timezone.utc)


def _make_storage(keys):
    storage = MagicMock()
    storage.list_keys = AsyncMock(
        return_value=[{"key": k, "last_modified": MODIFIED} for k in keys]
    )
    return storage


class TestBackfillLedger:
    async def test_indexes_missing_objects_only(self):
        ledger = FakeLedger(entries={"u1": [make_entry("e1", "generated/u1/a.jpg")]})
        storage = _make_storage(["generated/u1/a.jpg", "generated/u1/b.jpg"])

        added = await backfill_ledger(storage, ledger, "u1")

        assert added == 1
        storage.list_keys.assert_awaited_once_with("generated/u1/")
        new_entry = ledger.entries["u1"][-1]
        assert new_entry.image_url == "generated/u1/b.jpg"
        assert new_entry.created_at == MODIFIED

    async def test_second_run_adds_nothing(self):
        ledger = FakeLedger()
        storage = _make_storage(["generated/u1/a.jpg"])

        assert await backfill_ledger(storage, ledger, "u1") == 1
        assert await backfill_ledger(storage, ledger, "u1") == 0

    async def test_empty_prefix(self):
        assert await backfill_ledger(_make_storage([]), FakeLedger(), "u1") == 0

    async def test_failed_insert_is_skipped(self):
        ledger = FakeLedger()
        ledger.save_generated_image = AsyncMock(side_effect=[ConnectionError("db"), MagicMock()])
        storage = _make_storage(["generated/u1/a.jpg", "generated/u1/b.jpg"])

        assert await backfill_ledger(storage, ledger, "u1") == 1
