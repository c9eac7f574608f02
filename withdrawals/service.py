from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from common.config import Settings, get_settings
from common.events import EventBus, ledger_changed
from common.logger import get_logger
from common.phone import normalize_phone
from ledger.aggregator import CouponAggregator
from ledger.selection import exact_subset
from ledger.service import LedgerService, utc_now
from ledger.storage import LedgerStorage

from .errors import (
    BelowMinimumError,
    InsufficientBalanceError,
    NoExactCombinationError,
    NotAStepMultipleError,
)
from .models import BankInfo, WithdrawableAmount, WithdrawalRequest, WithdrawalStatus

logger = get_logger(__name__)


class WithdrawalService:
    def __init__(
        self,
        storage: LedgerStorage,
        ledger: Optional[LedgerService] = None,
        settings: Optional[Settings] = None,
        events: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.events = events
        self.clock = clock or utc_now
        self.ledger = ledger or LedgerService(storage, self.settings, events, self.clock)
        self.aggregator = CouponAggregator(storage, self.clock)

    def _floor_to_step(self, amount: int) -> int:
        step = self.settings.WITHDRAWAL_STEP
        return amount // step * step

    def get_withdrawable(self, customer_phone: str, now: Optional[datetime] = None) -> WithdrawableAmount:
        balance = self.aggregator.get_balance(normalize_phone(customer_phone), now or self.clock())
        withdrawable = self._floor_to_step(balance.available)
        return WithdrawableAmount(
            total_points=balance.available,
            withdrawable_amount=withdrawable,
            can_withdraw=withdrawable >= self.settings.WITHDRAWAL_MINIMUM,
        )

    def request_withdrawal(
        self,
        customer_phone: str,
        amount: int,
        bank_info: BankInfo,
        now: Optional[datetime] = None,
    ) -> tuple[WithdrawalRequest, int]:
        """Turn points into a pending payout.

        Returns the request and the points left afterwards. Coupons are spent
        whole, oldest-expiring first, so the amount must be made up exactly by
        some set of available coupons.
        """
        now = now or self.clock()
        phone = normalize_phone(customer_phone)
        minimum = self.settings.WITHDRAWAL_MINIMUM
        step = self.settings.WITHDRAWAL_STEP

        if amount < minimum:
            raise BelowMinimumError(f"The minimum withdrawal is {minimum:,} won")
        if amount % step:
            raise NotAStepMultipleError(f"Withdrawals must be in multiples of {step:,} won")

        withdrawal_id = uuid4()
        with self.storage.transaction():
            balance = self.aggregator.get_balance(phone, now, for_update=True)
            if amount > balance.available:
                withdrawable = self._floor_to_step(balance.available)
                raise InsufficientBalanceError(
                    f"Amount exceeds the withdrawable balance, at most {withdrawable:,} won",
                    available=withdrawable,
                )

            entries = exact_subset(balance.coupons, amount)
            if entries is None:
                raise NoExactCombinationError(
                    f"Your coupons cannot make up exactly {amount:,} won",
                    available=self._floor_to_step(balance.available),
                )

            consumed = [
                self.ledger.consume(entry.id, withdrawal_id, now, notify=False).id
                for entry in entries
            ]
            withdrawal = self.storage.insert_withdrawal(WithdrawalRequest(
                id=withdrawal_id,
                customer_phone=phone,
                amount=amount,
                bank_info=bank_info,
                status=WithdrawalStatus.PENDING,
                consumed_entry_ids=consumed,
                created_at=now,
            ))
            remaining = balance.available - amount

        logger.info(
            "Withdrawal requested",
            extra={"phone": phone, "amount": amount, "withdrawal_id": str(withdrawal_id)},
        )
        ledger_changed(self.events, [phone], "withdrawal")
        return withdrawal, remaining
