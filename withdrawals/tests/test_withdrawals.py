"""
Unit Tests for the Withdrawal Processor
"""

from datetime import datetime, timedelta, timezone

import pytest

from common.config import Settings
from ledger.models import LedgerEntryInput, OriginType
from ledger.storage import InMemoryStorage
from withdrawals.errors import (
    BelowMinimumError,
    InsufficientBalanceError,
    NoExactCombinationError,
    NotAStepMultipleError,
)
from withdrawals.models import BankInfo, WithdrawalStatus
from withdrawals.service import WithdrawalService


PHONE = "01012345678"
NOW = datetime(2026, 3, 15, 3, 0, tzinfo=timezone.utc)
BANK = BankInfo(bank_name="국민은행", account_number="123-45-6789", account_holder="김민수")


def make_service(*amounts) -> WithdrawalService:
    service = WithdrawalService(InMemoryStorage(), settings=Settings(), clock=lambda: NOW)
    for i, amount in enumerate(amounts):
        service.ledger.grant(
            LedgerEntryInput(customer_phone=PHONE, amount=amount, origin_type=OriginType.PURCHASE),
            now=NOW - timedelta(days=len(amounts) - i),
        )
    return service


class TestValidation:
    """Tests for amount rules."""

    @pytest.mark.parametrize("amount", [0, 4999])
    def test_below_minimum(self, amount):
        """Test amounts under 5000 won."""
        service = make_service(20000)

        with pytest.raises(BelowMinimumError):
            service.request_withdrawal(PHONE, amount, BANK)

    def test_not_a_step_multiple(self):
        """Test 5001 is not a multiple of 5000."""
        service = make_service(20000)

        with pytest.raises(NotAStepMultipleError):
            service.request_withdrawal(PHONE, 5001, BANK)

    def test_over_balance_by_one_won(self):
        """Test the balance cannot be exceeded even by 1 won."""
        service = make_service(5000, 4999)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            service.request_withdrawal(PHONE, 10000, BANK)

        assert exc_info.value.available == 5000

    def test_no_exact_combination(self):
        """Test a balance of whole coupons that cannot make up the amount."""
        service = make_service(3000, 3000)

        with pytest.raises(NoExactCombinationError):
            service.request_withdrawal(PHONE, 5000, BANK)


class TestRequestWithdrawal:
    """Tests for successful withdrawals."""

    @pytest.mark.parametrize("amount", [5000, 10000])
    def test_accepted_amounts(self, amount):
        """Test exact multiples within the balance are accepted."""
        service = make_service(5000, 5000, 2000)

        withdrawal, remaining = service.request_withdrawal("010-1234-5678", amount, BANK)

        assert withdrawal.amount == amount
        assert withdrawal.status == WithdrawalStatus.PENDING
        assert withdrawal.customer_phone == PHONE
        assert remaining == 12000 - amount
        assert service.get_withdrawable(PHONE).total_points == remaining

    def test_oldest_coupons_consumed(self):
        """Test the coupons closest to expiry pay first."""
        service = make_service(5000, 5000)
        oldest = sorted(service.ledger.list_by_customer(PHONE), key=lambda e: e.expires_at)[0]

        withdrawal, _ = service.request_withdrawal(PHONE, 5000, BANK)

        assert withdrawal.consumed_entry_ids == [oldest.id]
        assert service.storage.get_entry(oldest.id).consumed_by_order_id == withdrawal.id

    def test_withdrawal_is_recorded(self):
        """Test the pending request is stored with its bank details."""
        service = make_service(10000)

        withdrawal, _ = service.request_withdrawal(PHONE, 10000, BANK)

        assert service.storage.list_withdrawals(PHONE) == [withdrawal]
        assert withdrawal.bank_info.account_holder == "김민수"


class TestWithdrawable:
    """Tests for the withdrawable amount."""

    def test_floored_to_step(self):
        """Test 12000 points allow 10000 won."""
        service = make_service(7000, 5000)

        amount = service.get_withdrawable(PHONE)

        assert amount.total_points == 12000
        assert amount.withdrawable_amount == 10000
        assert amount.can_withdraw

    def test_below_minimum_cannot_withdraw(self):
        """Test a small balance."""
        amount = make_service(4999).get_withdrawable(PHONE)

        assert amount.withdrawable_amount == 0
        assert not amount.can_withdraw


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
