"""
Core building blocks: configuration, media refs, object store access.
"""

from src.core.config import AppConfig, LedgerConfig, RecordStoreConfig, StorageConfig
from src.core.errors import (
    CreditAccountError,
    DuplicateRecordError,
    InsufficientCreditsError,
    NotConfiguredError,
    RecordStorageError,
    StoreError,
)
from src.core.media_ref import InlineRef, LocalRef, MediaRef, RemoteRef, parse_media_ref
from src.core.records import GenerationRecord, LedgerImageEntry

__all__ = [
    "AppConfig",
    "LedgerConfig",
    "RecordStoreConfig",
    "StorageConfig",
    "StoreError",
    "NotConfiguredError",
    "RecordStorageError",
    "InsufficientCreditsError",
    "CreditAccountError",
    "DuplicateRecordError",
    "InlineRef",
    "LocalRef",
    "RemoteRef",
    "MediaRef",
    "parse_media_ref",
    "GenerationRecord",
    "LedgerImageEntry",
]
