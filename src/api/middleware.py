"""
Custom middleware for API security.
"""

import logging
import secrets
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """
    Validates the X-Api-Key header shared with the app shell.

    When api_key is None the middleware is disabled, which keeps local
    development on a single device simple.
    """

    def __init__(self, app, api_key: Optional[str] = None, exempt_paths: Optional[set[str]] = None):
        super().__init__(app)
        self._api_key = api_key
        self._exempt_paths = exempt_paths or set()

    async def dispatch(self, request: Request, call_next):
        if not self._api_key:
            return await call_next(request)

        if request.method == "OPTIONS" or request.url.path in self._exempt_paths:
            return await call_next(request)

        provided_key = request.headers.get("X-Api-Key") or ""
        if not secrets.compare_digest(provided_key, self._api_key):
            logger.warning(f"Rejected request to {request.url.path}: invalid API key")
            return JSONResponse(
                status_code=403,
                content={"detail": "Invalid or missing API key"},
            )

        return await call_next(request)
