"""
Tests for referral statistics and history
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from common.config import Settings
from ledger.models import LedgerEntry, OriginType
from ledger.storage import InMemoryStorage
from orders.models import OrderRecord, ProductLine
from referrals.stats import ReferralService, mask_name
from referrals.tiers import Tier
from stores.models import Address


REFERRER = "01011112222"
BUYER = "01033334444"
# 2026-03-31 23:30 in Seoul
NOW = datetime(2026, 3, 31, 14, 30, tzinfo=timezone.utc)


def add_order(storage, created_at, amount=58000, referrer_points=1740):
    order = OrderRecord(
        id=uuid4(),
        order_number="ORD-20260301-0001",
        transaction_id=f"tx-{uuid4().hex}",
        customer_name="김민수",
        customer_phone=BUYER,
        recipient_name="이영희",
        recipient_phone="01055556666",
        address=Address(
            sido="서울특별시", sigungu="강남구", dong="역삼동",
            detail="123-4", postal_code="06234",
        ),
        product=ProductLine(product_type="celebration_wreath", name="축하화환", unit_price=amount),
        referrer_phone=REFERRER,
        subtotal=amount,
        discount_amount=0,
        total_amount=amount,
        referrer_points=referrer_points,
        created_at=created_at,
    )
    return storage.insert_order(order)


def add_referral_entry(storage, amount, used=False):
    created = NOW - timedelta(days=1)
    storage.insert_entry(LedgerEntry(
        id=uuid4(),
        customer_phone=REFERRER,
        code=f"CP{uuid4().hex[:10].upper()}",
        amount=amount,
        origin_type=OriginType.REFERRAL,
        created_at=created,
        expires_at=created + timedelta(days=30),
        used_at=NOW if used else None,
    ))


class TestReferralStats:
    """Tests for derived referral stats."""

    def test_months_follow_local_timezone(self):
        """Test an order at 00:10 KST on the 1st counts for the new month."""
        storage = InMemoryStorage()
        service = ReferralService(storage, Settings(), clock=lambda: NOW)
        # 2026-02-28 15:10 UTC is 2026-03-01 00:10 in Seoul
        add_order(storage, datetime(2026, 2, 28, 15, 10, tzinfo=timezone.utc))
        # 2026-02-28 14:50 UTC is still February in Seoul
        add_order(storage, datetime(2026, 2, 28, 14, 50, tzinfo=timezone.utc))

        stats = service.get_stats(REFERRER)

        assert stats.this_month == 1
        assert stats.last_month == 1
        assert stats.total_referrals == 2

    def test_tier_from_this_month(self):
        """Test five referrals this month reach SILVER."""
        storage = InMemoryStorage()
        service = ReferralService(storage, Settings(), clock=lambda: NOW)
        for day in range(1, 6):
            add_order(storage, datetime(2026, 3, day, 3, 0, tzinfo=timezone.utc))

        stats = service.get_stats("010-1111-2222")

        assert stats.current_tier == Tier.SILVER
        assert stats.reward_rate == Decimal("3.5")
        assert stats.badge == "🥈"
        assert stats.next_tier == Tier.GOLD
        assert stats.referrals_to_next == 5

    def test_earnings_from_referral_entries(self):
        """Test earned and pending totals come from the ledger."""
        storage = InMemoryStorage()
        service = ReferralService(storage, Settings(), clock=lambda: NOW)
        add_referral_entry(storage, 1800)
        add_referral_entry(storage, 1200, used=True)

        stats = service.get_stats(REFERRER)

        assert stats.total_earned == 3000
        assert stats.pending_rewards == 1800

    def test_no_referrals(self):
        """Test a phone nobody used as referrer."""
        service = ReferralService(InMemoryStorage(), Settings(), clock=lambda: NOW)

        stats = service.get_stats(REFERRER)

        assert stats.total_referrals == 0
        assert stats.current_tier == Tier.BRONZE
        assert stats.referrals_to_next == 5


class TestReferralHistory:
    """Tests for the referral history list."""

    def test_history_masks_buyer_name(self):
        """Test the history items newest first with masked buyer names."""
        storage = InMemoryStorage()
        service = ReferralService(storage, Settings(), clock=lambda: NOW)
        add_order(storage, NOW - timedelta(days=2), amount=55000, referrer_points=1650)
        add_order(storage, NOW - timedelta(days=1), amount=60000, referrer_points=1800)

        history = service.get_history(REFERRER)

        assert [item.order_amount for item in history.referrals] == [60000, 55000]
        assert history.referrals[0].earned_points == 1800
        assert history.referrals[0].buyer_name == "김**"
        assert history.referrals[0].status == "confirmed"

    def test_mask_name(self):
        """Test masking keeps only the first character."""
        assert mask_name("홍길동") == "홍**"
        assert mask_name("A") == "A"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
