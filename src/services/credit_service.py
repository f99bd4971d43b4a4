"""
Credit ledger operations.

Balances are plain integers on the remote ``users`` row, created lazily with
a starting grant the first time a user is seen. Every adjustment re-reads
the remote balance before writing.

The read-check-write is NOT atomic: two devices deducting for the same user
at the same moment can both pass the check and the last write wins. This is
accepted for single-active-session usage and logged on every write.
"""

import logging
from typing import Optional

from src.core.config import DEFAULT_STARTING_CREDITS
from src.core.errors import CreditAccountError, InsufficientCreditsError
from src.services.ledger_client import CloudLedgerClient

logger = logging.getLogger(__name__)


class CreditService:
    def __init__(self, ledger: CloudLedgerClient, default_credits: int = DEFAULT_STARTING_CREDITS):
        self._ledger = ledger
        self.default_credits = default_credits

    async def get_balance(self, user_id: str, email: Optional[str] = None) -> int:
        credits = await self._ledger.get_credits(user_id)
        if credits is not None:
            return max(credits, 0)

        if not email:
            raise CreditAccountError(user_id)

        logger.info(f"No credit record for {user_id}, creating one with {self.default_credits}")
        await self._ledger.create_user(user_id, email, self.default_credits)
        return self.default_credits

    async def deduct(self, user_id: str, amount: int = 1, email: Optional[str] = None) -> int:
        if amount <= 0:
            raise ValueError("amount must be positive")

        current = await self.get_balance(user_id, email)
        if current < amount:
            logger.info(f"Rejected deduction of {amount} for {user_id}: balance {current}")
            raise InsufficientCreditsError(balance=current, required=amount)

        # Last-write-wins against concurrent deductions on another device
        new_balance = await self._ledger.set_credits(user_id, current - amount)
        logger.info(f"Deducted {amount} credits for {user_id}: {current} -> {new_balance}")
        return new_balance

    async def add(self, user_id: str, amount: int, email: Optional[str] = None) -> int:
        if amount <= 0:
            raise ValueError("amount must be positive")

        current = await self.get_balance(user_id, email)
        new_balance = await self._ledger.set_credits(user_id, current + amount)
        logger.info(f"Added {amount} credits for {user_id}: {current} -> {new_balance}")
        return new_balance

    async def delete_account(self, user_id: str) -> None:
        await self._ledger.delete_user(user_id)
