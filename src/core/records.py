"""
Generation records: one photo + AI result pairing tracked by the app.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.media_ref import MediaRef, parse_media_ref


def new_record_id() -> str:
    return uuid.uuid4().hex


class GenerationRecord(BaseModel):
    """A single stored record. Persisted as a JSON object inside a partition array."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_record_id, min_length=1)
    primary_media_ref: str = Field(..., min_length=1)
    result_media_ref: Optional[str] = None
    has_result: bool = False
    cloud_object_key: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    tags: List[str] = Field(default_factory=list)
    description: str = ""
    prompt: Optional[str] = None
    confidence: Optional[float] = None

    @field_validator("created_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def primary_media(self) -> Optional[MediaRef]:
        return parse_media_ref(self.primary_media_ref)

    @property
    def result_media(self) -> Optional[MediaRef]:
        return parse_media_ref(self.result_media_ref)

    def with_primary_ref(self, ref: str) -> "GenerationRecord":
        return self.model_copy(update={"primary_media_ref": ref})

    def with_owner(self, owner_id: Optional[str]) -> "GenerationRecord":
        return self.model_copy(update={"owner_id": owner_id})


class LedgerImageEntry(BaseModel):
    """A generated image row as returned by the cloud ledger."""

    id: str
    image_url: str  # object key, despite the column name
    created_at: datetime
    prompt: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def sort_newest_first(records: List[GenerationRecord]) -> List[GenerationRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)
