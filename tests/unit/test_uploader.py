"""Unit tests for src/services/uploader.py."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.errors import StorageNotConfiguredError
from src.services.uploader import MediaUploader
from tests.helpers import FakeLedger


def _make_storage():
    storage = MagicMock()
    storage.put = AsyncMock(side_effect=lambda key, data, content_type: key)
    return storage


class TestUploadBytes:
    async def test_uploads_and_indexes(self):
        storage = _make_storage()
        ledger = FakeLedger()
        uploader = MediaUploader(storage, ledger)

        result = await uploader.upload_bytes("u1", b"png-bytes", "image/png", prompt="a cat")

        assert result.object_key.startswith("generated/u1/")
        assert result.object_key.endswith(".png")
        assert result.indexed is True
        storage.put.assert_awaited_once_with(result.object_key, b"png-bytes", "image/png")
        assert ledger.entries["u1"][0].image_url == result.object_key
        assert ledger.entries["u1"][0].prompt == "a cat"

    async def test_ledger_failure_keeps_upload(self):
        storage = _make_storage()
        ledger = FakeLedger()
        ledger.save_generated_image = AsyncMock(side_effect=ConnectionError("db down"))
        uploader = MediaUploader(storage, ledger)

        result = await uploader.upload_bytes("u1", b"x")

        assert result.indexed is False
        assert result.object_key.endswith(".jpg")

    async def test_unconfigured_ledger_skips_indexing(self):
        uploader = MediaUploader(_make_storage(), FakeLedger(configured=False))
        result = await uploader.upload_bytes("u1", b"x")
        assert result.ledger_id is None

    async def test_storage_failure_propagates(self):
        storage = _make_storage()
        storage.put.side_effect = ConnectionError("r2 down")
        uploader = MediaUploader(storage, FakeLedger())

        with pytest.raises(ConnectionError):
            await uploader.upload_bytes("u1", b"x")

    async def test_requires_storage(self):
        with pytest.raises(StorageNotConfiguredError):
            await MediaUploader(None, FakeLedger()).upload_bytes("u1", b"x")

    async def test_rejects_empty_payload(self):
        with pytest.raises(ValueError):
            await MediaUploader(_make_storage(), FakeLedger()).upload_bytes("u1", b"")

