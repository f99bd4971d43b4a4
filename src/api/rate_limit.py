"""Rate limiter shared by the record, credit and upload routes."""

from slowapi import Limiter
from slowapi.util import get_remote_address


def _owner_or_address(request) -> str:
    """Signed-in callers are limited per owner; guests share a per-IP bucket."""
    owner_id = (request.headers.get("X-User-Id") or "").strip()
    if owner_id:
        return f"owner:{owner_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=_owner_or_address)
