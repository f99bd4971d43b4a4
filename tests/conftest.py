"""Root-level test fixtures."""

import pytest

from src.core.file_verifier import LocalFileVerifier
from src.services.background import BackgroundTasks
from src.services.kv_store import FileKeyValueStore
from src.services.reconciler import Reconciler
from src.services.record_cache import LocalRecordCache
from tests.helpers import FakeLedger, make_locator


# Ensure no real credentials leak into tests
@pytest.fixture(autouse=True)
def _clear_env_keys(monkeypatch):
    for name in (
        "DATABASE_URL",
        "R2_ACCOUNT_ID",
        "R2_ACCESS_KEY_ID",
        "R2_SECRET_ACCESS_KEY",
        "R2_BUCKET_NAME",
        "R2_PUBLIC_DOMAIN",
        "API_SECRET_KEY",
        "ADMIN_API_KEY",
        "MEDIA_DIR",
        "RECORD_STORE_DIR",
        "CLOUDWATCH_ENABLED",
        "DEFAULT_CREDITS",
        "MAX_RECORDS_STORED",
        "SYNC_LIMIT",
        "ALLOWED_HOSTS",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def kv_store(tmp_path):
    return FileKeyValueStore(str(tmp_path / "records"))


@pytest.fixture
def media_root(tmp_path):
    """Directory the verifier is allowed to delete from."""
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def verifier(media_root):
    return LocalFileVerifier(str(media_root))


@pytest.fixture
def record_cache(kv_store, verifier):
    return LocalRecordCache(kv_store, max_records=100, verifier=verifier)


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def background():
    return BackgroundTasks()


@pytest.fixture
def reconciler(record_cache, verifier, fake_ledger, background):
    return Reconciler(
        record_cache,
        verifier,
        make_locator(),
        fake_ledger,
        background=background,
    )


@pytest.fixture
def media_file(media_root):
    """A non-empty on-device image file."""
    path = media_root / "photo.jpg"
    path.write_bytes(b"\xff\xd8\xff-jpeg-bytes")
    return str(path)
