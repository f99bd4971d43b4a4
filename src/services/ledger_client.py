"""
Cloud ledger client: the remote source of truth for generated-image
metadata and credit balances.

Wraps the repository functions with one short-lived session per call so
callers never hold a session across await points of their own.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.errors import LedgerNotConfiguredError
from src.core.records import LedgerImageEntry
from src.db import repository as repo

logger = logging.getLogger(__name__)


class CloudLedgerClient:
    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]]):
        self._session_factory = session_factory

    @property
    def is_configured(self) -> bool:
        return self._session_factory is not None

    def _session(self) -> AsyncSession:
        if self._session_factory is None:
            raise LedgerNotConfiguredError()
        return self._session_factory()

    # ------------------------------------------------------------------
    # Generated images
    # ------------------------------------------------------------------

    async def list_generated_images(self, owner_id: str, limit: int = 50) -> list[LedgerImageEntry]:
        async with self._session() as session:
            rows = await repo.list_generated_images_for_user(session, owner_id, limit=limit)
        logger.debug(f"Ledger returned {len(rows)} image(s) for {owner_id}")
        return [
            LedgerImageEntry(
                id=str(row.id),
                image_url=row.image_url,
                created_at=row.created_at,
                prompt=row.prompt,
            )
            for row in rows
        ]

    async def save_generated_image(
        self,
        owner_id: str,
        object_key: str,
        prompt: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> LedgerImageEntry:
        async with self._session() as session:
            row = await repo.create_generated_image(
                session,
                user_id=owner_id,
                image_url=object_key,
                prompt=prompt,
                created_at=created_at,
            )
        return LedgerImageEntry(
            id=str(row.id), image_url=row.image_url, created_at=row.created_at, prompt=row.prompt
        )

    async def list_indexed_keys(self, owner_id: str) -> set[str]:
        async with self._session() as session:
            return await repo.list_image_keys_for_user(session, owner_id)

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    async def get_credits(self, user_id: str) -> Optional[int]:
        async with self._session() as session:
            return await repo.get_user_credits(session, user_id)

    async def set_credits(self, user_id: str, value: int) -> int:
        async with self._session() as session:
            return await repo.set_user_credits(session, user_id, value)

    async def create_user(self, user_id: str, email: str, initial_credits: int) -> None:
        async with self._session() as session:
            existing = await repo.get_user(session, user_id)
            if existing is None:
                await repo.create_user(
                    session, user_id=user_id, email=email, credits=initial_credits
                )
                logger.info(f"Created ledger user {user_id} with {initial_credits} credits")
            elif email and existing.email != email:
                await repo.update_user_email(session, user_id, email)

    async def delete_user(self, user_id: str) -> None:
        async with self._session() as session:
            await repo.delete_user(session, user_id)
        logger.info(f"Deleted ledger user {user_id}")
