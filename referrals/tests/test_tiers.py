"""
Unit Tests for the Referral Tier Engine

Tests cover:
1. Tier boundaries
2. Reward split between buyer and referrer
3. Self-referral rejection
"""

from decimal import Decimal

import pytest

from common.config import Settings
from referrals.tiers import (
    RewardPolicy,
    SelfReferralError,
    Tier,
    compute_tier,
    ensure_not_self_referral,
    reward_split,
)


class TestComputeTier:
    """Tests for tier computation."""

    @pytest.mark.parametrize(
        "count, tier, rate",
        [
            (0, Tier.BRONZE, "0.03"),
            (4, Tier.BRONZE, "0.03"),
            (5, Tier.SILVER, "0.035"),
            (9, Tier.SILVER, "0.035"),
            (10, Tier.GOLD, "0.04"),
            (19, Tier.GOLD, "0.04"),
            (20, Tier.VIP, "0.05"),
            (50, Tier.VIP, "0.05"),
        ],
    )
    def test_tier_boundaries(self, count, tier, rate):
        """Test the tier table is monotonic on the monthly count."""
        status = compute_tier(count)

        assert status.tier == tier
        assert status.rate == Decimal(rate)

    def test_referrals_to_next(self):
        """Test the gap to the next tier's minimum."""
        assert compute_tier(0).referrals_to_next == 5
        assert compute_tier(7).referrals_to_next == 3
        assert compute_tier(7).next_tier == Tier.GOLD
        assert compute_tier(19).referrals_to_next == 1

    def test_vip_has_no_next_tier(self):
        """Test VIP is open-ended."""
        status = compute_tier(120)

        assert status.next_tier is None
        assert status.referrals_to_next == 0
        assert status.badge == "💎"

    def test_negative_count_rejected(self):
        """Test that a negative count is a programming error."""
        with pytest.raises(ValueError):
            compute_tier(-1)


class TestRewardSplit:
    """Tests for buyer/referrer accrual."""

    def test_no_referrer_uses_base_rate(self):
        """Test a plain order earns the buyer 3% and nobody else anything."""
        split = reward_split(58000, None, buyer_is_member=False)

        assert split.buyer_rate == Decimal("0.03")
        assert split.buyer_points == 1740
        assert split.referrer_points == 0

    def test_referred_member(self):
        """Test a referred member earns 5% and the referrer a flat 3%."""
        split = reward_split(60000, Tier.BRONZE, buyer_is_member=True)

        assert split.buyer_points == 3000
        assert split.referrer_points == 1800

    def test_referrer_rate_ignores_tier(self):
        """Test a VIP referrer earns the same flat rate as a bronze one."""
        bronze = reward_split(60000, Tier.BRONZE, buyer_is_member=True)
        vip = reward_split(60000, Tier.VIP, buyer_is_member=True)

        assert vip.referrer_points == bronze.referrer_points

    def test_points_are_floored(self):
        """Test fractional points are dropped."""
        split = reward_split(33333, None, buyer_is_member=False)

        assert split.buyer_points == 999

    def test_rates_are_independent_settings(self):
        """Test buyer and referrer rates can be configured separately."""
        policy = RewardPolicy.from_settings(Settings(
            REFERRED_GUEST_BUYER_RATE=Decimal("0.04"),
            REFERRER_RATE=Decimal("0.02"),
        ))

        split = reward_split(100000, Tier.SILVER, buyer_is_member=False, policy=policy)

        assert split.buyer_points == 4000
        assert split.referrer_points == 2000


class TestSelfReferral:
    """Tests for self-referral rejection."""

    def test_same_phone_rejected(self):
        """Test equality is checked after normalisation."""
        with pytest.raises(SelfReferralError):
            ensure_not_self_referral("01012345678", "010-1234-5678")

    def test_other_phone_and_missing_referrer_allowed(self):
        """Test the check passes for a different referrer or none."""
        ensure_not_self_referral("01012345678", "01087654321")
        ensure_not_self_referral("01012345678", None)
        ensure_not_self_referral("01012345678", "  ")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
