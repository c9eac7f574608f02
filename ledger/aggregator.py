from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .models import BalanceBreakdown, CouponBalance, LedgerEntry, OriginType
from .selection import expiry_order
from .storage import LedgerStorage


def summarize(customer_phone: str, entries: Iterable[LedgerEntry], now: datetime) -> CouponBalance:
    """Fold a customer's ledger into the balance shown at checkout.

    ``total`` counts every grant ever made; ``available`` and the breakdown
    only count entries that are unused and not yet expired at ``now``.
    """
    entries = list(entries)
    available = [e for e in entries if e.is_available(now)]

    breakdown = BalanceBreakdown()
    for entry in available:
        if entry.origin_type == OriginType.PURCHASE:
            breakdown.purchase += entry.amount
        elif entry.origin_type == OriginType.REFERRAL:
            breakdown.referral += entry.amount
        else:
            breakdown.welcome += entry.amount

    return CouponBalance(
        customer_phone=customer_phone,
        total=sum(e.amount for e in entries),
        available=breakdown.total(),
        breakdown=breakdown,
        count=len(available),
        coupons=expiry_order(available),
    )


class CouponAggregator:
    def __init__(self, storage: LedgerStorage, clock: Optional[Callable[[], datetime]] = None):
        self.storage = storage
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_balance(
        self, customer_phone: str, now: Optional[datetime] = None, for_update: bool = False
    ) -> CouponBalance:
        entries = self.storage.list_entries(customer_phone, for_update=for_update)
        return summarize(customer_phone, entries, now or self.clock())
