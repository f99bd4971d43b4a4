"""
Credit balance endpoints.

Insufficient balances come back as 402 (see the app-level exception
handlers) so the app can offer a purchase flow instead of a retry.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from starlette.requests import Request

from src.api.deps import get_current_user_id, get_services, get_user_email
from src.api.rate_limit import limiter
from src.api.schemas import CreditAdjustRequest, CreditBalanceResponse, ErrorResponse
from src.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credits", tags=["Credits"])

_ERRORS = {
    402: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get("/balance", response_model=CreditBalanceResponse, responses=_ERRORS)
@limiter.limit("30/minute")
async def get_balance(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    email: Optional[str] = Depends(get_user_email),
    services: Services = Depends(get_services),
) -> CreditBalanceResponse:
    """Get the caller's balance, creating the credit record on first access."""
    balance = await services.credits.get_balance(user_id, email)
    return CreditBalanceResponse(balance=balance)


@router.post("/deduct", response_model=CreditBalanceResponse, responses=_ERRORS)
@limiter.limit("30/minute")
async def deduct_credits(
    request: Request,
    body: CreditAdjustRequest,
    user_id: str = Depends(get_current_user_id),
    email: Optional[str] = Depends(get_user_email),
    services: Services = Depends(get_services),
) -> CreditBalanceResponse:
    balance = await services.credits.deduct(user_id, body.amount, email)
    return CreditBalanceResponse(balance=balance)


@router.post("/add", response_model=CreditBalanceResponse, responses=_ERRORS)
@limiter.limit("10/minute")
async def add_credits(
    request: Request,
    body: CreditAdjustRequest,
    user_id: str = Depends(get_current_user_id),
    email: Optional[str] = Depends(get_user_email),
    services: Services = Depends(get_services),
) -> CreditBalanceResponse:
    balance = await services.credits.add(user_id, body.amount, email)
    return CreditBalanceResponse(balance=balance)
