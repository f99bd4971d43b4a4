"""Tests for CreditService: lazy account creation and floor-checked deductions."""

import pytest

from src.core.errors import CreditAccountError, InsufficientCreditsError
from src.services.credit_service import CreditService
from tests.helpers import FakeLedger


@pytest.fixture
def ledger():
    return FakeLedger(credits={"u1": 3})


@pytest.fixture
def service(ledger):
    return CreditService(ledger, default_credits=5)


class TestGetBalance:
    async def test_existing_user(self, service):
        assert await service.get_balance("u1") == 3

    async def test_new_user_with_email_gets_starting_grant(self, service, ledger):
        assert await service.get_balance("u2", email="new@example.com") == 5
        assert ledger.credits["u2"] == 5
        assert ledger.emails["u2"] == "new@example.com"

    async def test_new_user_without_email_is_an_error(self, service):
        with pytest.raises(CreditAccountError) as exc_info:
            await service.get_balance("u2")
        assert exc_info.value.user_id == "u2"

    async def test_negative_stored_balance_reads_as_zero(self, ledger, service):
        ledger.credits["u1"] = -2
        assert await service.get_balance("u1") == 0


class TestDeduct:
    async def test_rejects_beyond_balance_and_leaves_it_unchanged(self, service, ledger):
        with pytest.raises(InsufficientCreditsError) as exc_info:
            await service.deduct("u1", 5)

        assert exc_info.value.balance == 3
        assert exc_info.value.required == 5
        assert ledger.credits["u1"] == 3

    async def test_decreases_by_amount(self, service, ledger):
        assert await service.deduct("u1", 2) == 1
        assert ledger.credits["u1"] == 1

    async def test_can_spend_down_to_zero(self, service, ledger):
        assert await service.deduct("u1", 3) == 0

    async def test_default_amount_is_one(self, service):
        assert await service.deduct("u1") == 2

    async def test_non_positive_amount(self, service):
        with pytest.raises(ValueError):
            await service.deduct("u1", 0)

    async def test_first_deduction_bootstraps_account(self, service, ledger):
        assert await service.deduct("u9", 1, email="u9@example.com") == 4


class TestAdd:
    async def test_increases_balance(self, service, ledger):
        assert await service.add("u1", 10) == 13
        assert ledger.credits["u1"] == 13

    async def test_non_positive_amount(self, service):
        with pytest.raises(ValueError):
            await service.add("u1", -1)


class TestDeleteAccount:
    async def test_removes_ledger_user(self, service, ledger):
        await service.delete_account("u1")
        assert "u1" not in ledger.credits
