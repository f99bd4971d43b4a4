"""
Pydantic schemas for API request/response models.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.core.records import GenerationRecord


class RecordCreateRequest(BaseModel):
    """A record created by the app after a capture or a successful generation."""

    id: Optional[str] = Field(None, min_length=1, max_length=128, description="Client-generated id (generated when omitted)")
    primary_media_ref: str = Field(..., min_length=1, description="Media-dir path, remote URL, data URI or object key")
    result_media_ref: Optional[str] = Field(None, description="AI-transformed variant")
    has_result: bool = False
    cloud_object_key: Optional[str] = Field(None, description="Object-store key backing this record")
    created_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list, max_length=50)
    description: str = Field("", max_length=5000)
    prompt: Optional[str] = Field(None, max_length=5000)
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class RecordListResponse(BaseModel):
    records: List[GenerationRecord]
    count: int


class SyncResponse(BaseModel):
    inserted: int


class CleanupResponse(BaseModel):
    removed: int = Field(..., description="Orphaned media files deleted")


class StorageInfoResponse(BaseModel):
    """On-device media usage."""
    total_files: int
    total_size: int
    formatted_size: str


class DeleteResponse(BaseModel):
    deleted: bool
    id: str


class CreditBalanceResponse(BaseModel):
    """Current credit balance for a user."""
    balance: int


class CreditAdjustRequest(BaseModel):
    amount: int = Field(1, ge=1, le=10000, description="Credits to deduct or add")


class PreferencesPayload(BaseModel):
    preferences: Dict[str, Any] = Field(default_factory=dict)


class UploadResponse(BaseModel):
    object_key: str
    url: Optional[str] = Field(None, description="Fetchable URL (signed or public), if resolvable now")
    indexed: bool = Field(..., description="Whether the ledger row was written")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    storage_configured: bool
    database_configured: bool


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str
