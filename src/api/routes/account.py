"""
Per-owner preferences and account deletion.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from src.api.deps import get_current_user_id, get_owner_id, get_services
from src.api.schemas import PreferencesPayload
from src.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])


@router.get("/preferences", response_model=PreferencesPayload)
async def get_preferences(
    owner_id: Optional[str] = Depends(get_owner_id),
    services: Services = Depends(get_services),
) -> PreferencesPayload:
    return PreferencesPayload(preferences=await services.cache.get_preferences(owner_id))


@router.put("/preferences", response_model=PreferencesPayload)
async def save_preferences(
    body: PreferencesPayload,
    owner_id: Optional[str] = Depends(get_owner_id),
    services: Services = Depends(get_services),
) -> PreferencesPayload:
    await services.cache.save_preferences(body.preferences, owner_id)
    return body


@router.delete("/account", status_code=204)
async def delete_account(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> None:
    """Delete the ledger user (credits and image index) and local data."""
    if services.ledger.is_configured:
        await services.credits.delete_account(user_id)
    await services.cache.clear_owner_data(user_id)
    logger.info(f"Account data deleted for {user_id}")
