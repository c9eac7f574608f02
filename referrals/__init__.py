"""
Referral tiers and rewards

- Monthly referral count -> BRONZE / SILVER / GOLD / VIP
- Buyer and referrer accrual as two independent rates
- Self-referral rejection
"""

from .tiers import Tier, TierStatus, RewardPolicy, RewardSplit, compute_tier, reward_split

__all__ = [
    "Tier",
    "TierStatus",
    "RewardPolicy",
    "RewardSplit",
    "compute_tier",
    "reward_split",
]
