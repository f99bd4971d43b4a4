"""
Configuration settings for the PopCam record store.
"""

from dataclasses import dataclass, field
from typing import Optional
import os

# Object store defaults
SIGNED_URL_TTL_SECONDS = 3600
SIGNED_URL_CACHE_SECONDS = 55 * 60  # Cache below the real expiry

# Local record store defaults
DEFAULT_RECORD_STORE_DIR = "data/records"
DEFAULT_MEDIA_DIR = "data/media"
DEFAULT_MAX_RECORDS_STORED = 100
DEFAULT_SYNC_LIMIT = 50

# Credits granted on first observation of a user
DEFAULT_STARTING_CREDITS = 5

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class StorageConfig:
    """Configuration for the Cloudflare R2 object store."""

    account_id: str = field(default_factory=lambda: os.getenv("R2_ACCOUNT_ID", ""))
    access_key_id: str = field(default_factory=lambda: os.getenv("R2_ACCESS_KEY_ID", ""))
    secret_access_key: str = field(default_factory=lambda: os.getenv("R2_SECRET_ACCESS_KEY", ""))
    bucket_name: str = field(default_factory=lambda: os.getenv("R2_BUCKET_NAME", ""))

    # Custom/public domain mapped to the bucket, e.g. https://cdn.example.com
    public_domain: Optional[str] = field(
        default_factory=lambda: os.getenv("R2_PUBLIC_DOMAIN") or None
    )

    signed_url_ttl: int = SIGNED_URL_TTL_SECONDS
    cache_ttl: int = SIGNED_URL_CACHE_SECONDS

    def validate(self) -> bool:
        """Check if all R2 credentials are configured."""
        return all(
            [self.account_id, self.access_key_id, self.secret_access_key, self.bucket_name]
        )


@dataclass
class LedgerConfig:
    """Configuration for the remote relational ledger (Supabase PostgreSQL)."""

    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", ""))
    default_credits: int = field(
        default_factory=lambda: _env_int("DEFAULT_CREDITS", DEFAULT_STARTING_CREDITS)
    )

    def validate(self) -> bool:
        """Check if a database URL is configured."""
        return bool(self.database_url)

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver prefix."""
        url = self.database_url
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url


@dataclass
class RecordStoreConfig:
    """Configuration for the on-device record cache."""

    data_dir: str = field(
        default_factory=lambda: os.getenv("RECORD_STORE_DIR", DEFAULT_RECORD_STORE_DIR)
    )
    # On-device media files; local refs outside it are never deleted
    media_dir: str = field(
        default_factory=lambda: os.getenv("MEDIA_DIR", DEFAULT_MEDIA_DIR)
    )
    max_records: int = field(
        default_factory=lambda: _env_int("MAX_RECORDS_STORED", DEFAULT_MAX_RECORDS_STORED)
    )
    sync_limit: int = field(
        default_factory=lambda: _env_int("SYNC_LIMIT", DEFAULT_SYNC_LIMIT)
    )


@dataclass
class AppConfig:
    """Main configuration combining all settings."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    records: RecordStoreConfig = field(default_factory=RecordStoreConfig)

    api_key: Optional[str] = field(default_factory=lambda: os.getenv("API_SECRET_KEY") or None)
    # Cross-partition listing and media cleanup; unset disables those routes
    admin_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("ADMIN_API_KEY") or None
    )
    debug_mode: bool = False

    # Comma-separated in the environment; "*" accepts any Host header
    allowed_hosts: list[str] = field(
        default_factory=lambda: _env_list("ALLOWED_HOSTS", ["*"])
    )
    cors_origins: list[str] = field(
        default_factory=lambda: _env_list(
            "CORS_ORIGINS", ["http://localhost:8081", "http://localhost:19006"]
        )
    )
