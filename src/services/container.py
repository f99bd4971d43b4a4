"""
Explicit wiring of the record store services.

Everything is constructed here once and passed down; nothing reaches for a
module-level client. Tests build their own Services with fakes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import AppConfig
from src.core.errors import NotConfiguredError
from src.core.file_verifier import LocalFileVerifier
from src.core.object_locator import ObjectLocator
from src.core.storage import R2Storage
from src.services.background import BackgroundTasks
from src.services.credit_service import CreditService
from src.services.kv_store import FileKeyValueStore
from src.services.ledger_client import CloudLedgerClient
from src.services.reconciler import Reconciler
from src.services.record_cache import LocalRecordCache
from src.services.uploader import MediaUploader

logger = logging.getLogger(__name__)


@dataclass
class Services:
    cache: LocalRecordCache
    reconciler: Reconciler
    credits: CreditService
    ledger: CloudLedgerClient
    uploader: MediaUploader
    background: BackgroundTasks
    verifier: LocalFileVerifier
    storage: Optional[R2Storage] = None
    locator: Optional[ObjectLocator] = None


def build_services(
    config: AppConfig,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> Services:
    """Assemble services from config. Missing remotes degrade to local-only."""
    storage: Optional[R2Storage] = None
    locator: Optional[ObjectLocator] = None
    try:
        if config.storage.validate():
            storage = R2Storage.from_config(config.storage)
        locator = ObjectLocator.from_config(config.storage, signer=storage)
    except NotConfiguredError as e:
        logger.warning(f"Object store unavailable, cloud fallback disabled: {e}")

    if session_factory is None:
        logger.warning("Cloud ledger unavailable, sync and credits disabled")

    verifier = LocalFileVerifier(config.records.media_dir)
    cache = LocalRecordCache(
        FileKeyValueStore(config.records.data_dir),
        max_records=config.records.max_records,
        verifier=verifier,
    )
    ledger = CloudLedgerClient(session_factory)
    background = BackgroundTasks()

    return Services(
        cache=cache,
        reconciler=Reconciler(
            cache,
            verifier,
            locator,
            ledger,
            background=background,
            sync_limit=config.records.sync_limit,
        ),
        credits=CreditService(ledger, default_credits=config.ledger.default_credits),
        ledger=ledger,
        uploader=MediaUploader(storage, ledger),
        background=background,
        verifier=verifier,
        storage=storage,
        locator=locator,
    )
