"""
Upload endpoint: back a generated image up to the object store.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.requests import Request

from src.api.deps import get_current_user_id, get_services
from src.api.rate_limit import limiter
from src.api.schemas import ErrorResponse, UploadResponse
from src.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@router.post(
    "",
    response_model=UploadResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
@limiter.limit("20/minute")
async def upload_image(
    request: Request,
    prompt: Optional[str] = Query(None, max_length=5000),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> UploadResponse:
    """Upload the raw request body (an image/* payload) for the caller."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Expected an image/* request body")

    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Empty upload")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Image exceeds 10 MB size limit")

    result = await services.uploader.upload_bytes(user_id, data, content_type, prompt=prompt)
    url = await services.locator.resolve(result.object_key) if services.locator else None
    return UploadResponse(object_key=result.object_key, url=url, indexed=result.indexed)
