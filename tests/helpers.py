"""Shared builders and fakes for the test suite."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

from src.core.records import GenerationRecord, LedgerImageEntry

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
SIGNED_URL = "https://signed.example/generated/u1/x.jpg?X-Amz-Signature=abc"
ADMIN_KEY = "admin-secret"


def make_record(
    record_id: str,
    primary: str,
    *,
    minutes: int = 0,
    cloud_key: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> GenerationRecord:
    """A record created ``minutes`` after BASE_TIME."""
    return GenerationRecord(
        id=record_id,
        primary_media_ref=primary,
        cloud_object_key=cloud_key,
        has_result=cloud_key is not None,
        owner_id=owner_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def make_entry(entry_id: str, key: str, *, minutes: int = 0, prompt: Optional[str] = None) -> LedgerImageEntry:
    return LedgerImageEntry(
        id=entry_id,
        image_url=key,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        prompt=prompt,
    )


class FakeLedger:
    """In-memory stand-in for CloudLedgerClient."""

    def __init__(self, entries=None, credits=None, configured=True):
        self.entries: dict[str, list[LedgerImageEntry]] = entries or {}
        self.credits: dict[str, int] = credits or {}
        self.emails: dict[str, str] = {}
        self.configured = configured
        self.fail_reads = False

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def list_generated_images(self, owner_id, limit=50):
        if self.fail_reads:
            raise ConnectionError("ledger unreachable")
        rows = sorted(self.entries.get(owner_id, []), key=lambda e: e.created_at, reverse=True)
        return rows[:limit]

    async def save_generated_image(self, owner_id, object_key, prompt=None, created_at=None):
        entry = LedgerImageEntry(
            id=f"ledger-{len(self.entries.get(owner_id, [])) + 1}",
            image_url=object_key,
            created_at=created_at or datetime.now(timezone.utc),
            prompt=prompt,
        )
        self.entries.setdefault(owner_id, []).append(entry)
        return entry

    async def list_indexed_keys(self, owner_id):
        return {e.image_url for e in self.entries.get(owner_id, [])}

    async def get_credits(self, user_id):
        return self.credits.get(user_id)

    async def set_credits(self, user_id, value):
        self.credits[user_id] = value
        return value

    async def create_user(self, user_id, email, initial_credits):
        if user_id not in self.credits:
            self.credits[user_id] = initial_credits
        self.emails[user_id] = email

    async def delete_user(self, user_id):
        self.credits.pop(user_id, None)
        self.entries.pop(user_id, None)


def make_locator(mapping=None, *, fail: bool = False):
    """AsyncMock locator resolving keys through ``mapping`` (None when unknown)."""
    locator = AsyncMock()
    if fail:
        locator.resolve.side_effect = ConnectionError("object store unreachable")
    else:
        locator.resolve.side_effect = lambda key: (mapping or {}).get(key)
    return locator


