"""
Generation record endpoints.

Reads always succeed with a best-effort list; writes surface failures so
the app can tell the user (e.g. "failed to delete photo").
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from src.api.deps import get_current_user_id, get_owner_id, get_services, require_admin
from src.api.rate_limit import limiter
from src.api.schemas import (
    CleanupResponse,
    DeleteResponse,
    ErrorResponse,
    RecordCreateRequest,
    RecordListResponse,
    StorageInfoResponse,
    SyncResponse,
)
from src.core.media_ref import LocalRef, parse_media_ref
from src.core.records import GenerationRecord, new_record_id
from src.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/records", tags=["Records"])


@router.get("", response_model=RecordListResponse)
@limiter.limit("60/minute")
async def list_records(
    request: Request,
    owner_id: Optional[str] = Depends(get_owner_id),
    services: Services = Depends(get_services),
) -> RecordListResponse:
    """Healed records for the caller, newest first."""
    records = await services.reconciler.get_healed_records(owner_id)
    return RecordListResponse(records=records, count=len(records))


@router.get(
    "/all",
    response_model=RecordListResponse,
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@limiter.limit("10/minute")
async def list_all_records(
    request: Request,
    services: Services = Depends(get_services),
) -> RecordListResponse:
    """Every stored record across all partitions (admin/migration use)."""
    records = await services.cache.load_all()
    return RecordListResponse(records=records, count=len(records))


@router.get(
    "/storage",
    response_model=StorageInfoResponse,
    dependencies=[Depends(require_admin)],
)
async def storage_info(services: Services = Depends(get_services)) -> StorageInfoResponse:
    usage = await services.cache.storage_info()
    return StorageInfoResponse(
        total_files=usage.total_files,
        total_size=usage.total_size,
        formatted_size=usage.formatted_size,
    )


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(require_admin)],
    responses={500: {"model": ErrorResponse}},
)
async def cleanup_orphaned_files(services: Services = Depends(get_services)) -> CleanupResponse:
    """Delete media files no stored record references."""
    removed = await services.cache.cleanup_orphaned_files()
    return CleanupResponse(removed=removed)


@router.post(
    "",
    response_model=GenerationRecord,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_record(
    body: RecordCreateRequest,
    owner_id: Optional[str] = Depends(get_owner_id),
    services: Services = Depends(get_services),
) -> GenerationRecord:
    for ref in (body.primary_media_ref, body.result_media_ref):
        if isinstance(parse_media_ref(ref), LocalRef) and not services.verifier.is_managed(ref):
            raise HTTPException(
                status_code=422,
                detail="Local media must live in the configured media directory",
            )

    record = GenerationRecord(
        id=body.id or new_record_id(),
        primary_media_ref=body.primary_media_ref,
        result_media_ref=body.result_media_ref,
        has_result=body.has_result,
        cloud_object_key=body.cloud_object_key,
        owner_id=owner_id,
        created_at=body.created_at or datetime.now(timezone.utc),
        tags=body.tags,
        description=body.description,
        prompt=body.prompt,
        confidence=body.confidence,
    )
    return await services.cache.add(record, owner_id)


@router.delete(
    "/{record_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def delete_record(
    record_id: str,
    owner_id: Optional[str] = Depends(get_owner_id),
    services: Services = Depends(get_services),
) -> DeleteResponse:
    if owner_id:
        await services.cache.migrate_guest_into(owner_id)
    deleted = await services.cache.delete(record_id, owner_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Record not found")
    return DeleteResponse(deleted=True, id=record_id)


@router.post("/sync", response_model=SyncResponse)
@limiter.limit("10/minute")
async def sync_records(
    request: Request,
    owner_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> SyncResponse:
    """Pull ledger entries missing locally. Failures report zero inserted."""
    inserted = await services.reconciler.sync_from_cloud(owner_id)
    return SyncResponse(inserted=inserted)
