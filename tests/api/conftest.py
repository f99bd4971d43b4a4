"""API-specific test fixtures."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from src.api.app import app
from src.api.rate_limit import limiter
from src.services.background import BackgroundTasks
from src.services.container import Services
from src.services.credit_service import CreditService
from src.services.kv_store import FileKeyValueStore
from src.services.reconciler import Reconciler
from src.services.record_cache import LocalRecordCache
from src.services.uploader import MediaUploader
from tests.helpers import ADMIN_KEY, SIGNED_URL, FakeLedger, make_locator


@pytest.fixture
def api_ledger():
    return FakeLedger(credits={"u1": 3})


@pytest.fixture
def api_storage():
    storage = MagicMock()
    storage.put = AsyncMock(side_effect=lambda key, data, content_type: key)
    return storage


@pytest.fixture
def services(tmp_path, verifier, api_ledger, api_storage):
    """Services wired with fakes for the ledger and object store."""
    cache = LocalRecordCache(
        FileKeyValueStore(str(tmp_path / "api-records")), max_records=100, verifier=verifier
    )
    locator = make_locator({"generated/u1/123.jpg": SIGNED_URL})
    background = BackgroundTasks()
    return Services(
        cache=cache,
        reconciler=Reconciler(cache, verifier, locator, api_ledger, background=background),
        credits=CreditService(api_ledger, default_credits=5),
        ledger=api_ledger,
        uploader=MediaUploader(api_storage, api_ledger),
        background=background,
        verifier=verifier,
        storage=api_storage,
        locator=locator,
    )


@pytest.fixture
async def async_client(services):
    """Async test client for FastAPI with the service container overridden."""
    app.state.services = services
    app.state.admin_api_key = ADMIN_KEY
    # Disable the rate limiter so tests don't hit 429
    limiter.enabled = False

    # Patch database initialization to avoid real DB connections
    with (
        patch("src.api.app.init_db", new_callable=AsyncMock),
        patch("src.api.app.close_db", new_callable=AsyncMock),
    ):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    limiter.enabled = True
    del app.state.services
    app.state.admin_api_key = None
