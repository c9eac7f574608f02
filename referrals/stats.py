"""
Referral statistics, derived on every read.

Counts come from orders naming the phone as referrer and earnings from the
phone's referral ledger entries, so the tier can never drift from the log.
Month boundaries follow the shop's local timezone.
"""
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from common.config import Settings, get_settings
from common.phone import normalize_phone
from ledger.models import OriginType
from ledger.storage import LedgerStorage

from .models import ReferralHistory, ReferralHistoryItem, ReferralStats
from .tiers import compute_tier, rule_for


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def mask_name(name: str) -> str:
    name = name.strip()
    if len(name) <= 1:
        return name
    return name[0] + "*" * (len(name) - 1)


class ReferralService:
    def __init__(
        self,
        storage: LedgerStorage,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.settings = settings or get_settings()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.settings.TIMEZONE)

    def get_stats(self, referrer_phone: str, now: Optional[datetime] = None) -> ReferralStats:
        now = now or self.clock()
        phone = normalize_phone(referrer_phone)
        orders = self.storage.list_orders_by_referrer(phone)

        local_now = now.astimezone(self.tz)
        this_month = (local_now.year, local_now.month)
        last_month = _previous_month(*this_month)

        months = [
            (local.year, local.month)
            for local in (o.created_at.astimezone(self.tz) for o in orders)
        ]
        status = compute_tier(months.count(this_month))

        referral_entries = [
            e for e in self.storage.list_entries(phone)
            if e.origin_type == OriginType.REFERRAL
        ]

        return ReferralStats(
            customer_phone=phone,
            total_referrals=len(orders),
            this_month=months.count(this_month),
            last_month=months.count(last_month),
            current_tier=status.tier,
            next_tier=status.next_tier,
            referrals_to_next=status.referrals_to_next,
            reward_rate=rule_for(status.tier).rate_percent,
            badge=status.badge,
            total_earned=sum(e.amount for e in referral_entries),
            pending_rewards=sum(e.amount for e in referral_entries if e.is_available(now)),
        )

    def get_history(self, referrer_phone: str) -> ReferralHistory:
        phone = normalize_phone(referrer_phone)
        items = [
            ReferralHistoryItem(
                id=order.id,
                order_number=order.order_number,
                buyer_name=mask_name(order.customer_name),
                order_date=order.created_at,
                order_amount=order.total_amount,
                earned_points=order.referrer_points,
                status=order.status,
            )
            for order in self.storage.list_orders_by_referrer(phone)
        ]
        return ReferralHistory(customer_phone=phone, referrals=items)
