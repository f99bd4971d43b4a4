"""
FastAPI dependencies: service container and caller identity.
"""

import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Header
from starlette.requests import Request

from src.services.container import Services

logger = logging.getLogger(__name__)

_MAX_ID_LENGTH = 255


def get_services(request: Request) -> Services:
    """Services assembled at startup (see src.api.app lifespan)."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


async def get_owner_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> Optional[str]:
    """
    The signed-in user's id from the X-User-Id header, or None for a guest.

    The auth provider is validated upstream; this service only scopes data.
    """
    if x_user_id is None:
        return None
    x_user_id = x_user_id.strip()
    if not x_user_id:
        return None
    if len(x_user_id) > _MAX_ID_LENGTH or "/" in x_user_id:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header")
    return x_user_id


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Like get_owner_id, but guests are rejected."""
    owner_id = await get_owner_id(x_user_id)
    if owner_id is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Provide X-User-Id header.",
        )
    return owner_id


async def get_user_email(
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
) -> Optional[str]:
    """Email used to bootstrap a credit record the first time a user is seen."""
    return x_user_email.strip() if x_user_email and x_user_email.strip() else None


async def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> None:
    """Guard for cross-partition and maintenance routes."""
    expected = getattr(request.app.state, "admin_api_key", None)
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled. Set ADMIN_API_KEY.",
        )
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        logger.warning(f"Rejected admin request to {request.url.path}: invalid admin key")
        raise HTTPException(status_code=401, detail="Invalid or missing admin key")
