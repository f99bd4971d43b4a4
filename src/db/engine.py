"""
Async SQLAlchemy engine and session factory for the Supabase PostgreSQL ledger.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
)

from src.core.config import LedgerConfig
from src.core.errors import LedgerNotConfiguredError

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_session_factory(
    config: LedgerConfig,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Build an engine + session factory. Raises LedgerNotConfiguredError without a URL."""
    if not config.validate():
        raise LedgerNotConfiguredError()

    engine = create_async_engine(
        config.async_database_url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, factory


async def init_db(config: Optional[LedgerConfig] = None) -> None:
    """Initialize the app-wide engine and session factory. Call once at startup."""
    global _engine, _async_session_factory

    config = config or LedgerConfig()
    if not config.validate():
        logger.warning("DATABASE_URL not set, cloud ledger features disabled")
        return

    _engine, _async_session_factory = create_session_factory(config)
    logger.info("Database engine initialized")


async def close_db() -> None:
    """Dispose of the engine. Call once at app shutdown."""
    global _engine, _async_session_factory
    if _engine:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _async_session_factory = None


def get_session_factory() -> Optional[async_sessionmaker[AsyncSession]]:
    """Get the session factory for use outside request scope."""
    return _async_session_factory
