from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Optional

from common.config import Settings, get_settings
from common.errors import LoyaltyError
from common.phone import normalize_optional_phone


class ReferralError(LoyaltyError):
    code = "referral_error"


class SelfReferralError(ReferralError):
    code = "self_referral"

    def default_message(self) -> str:
        return "You cannot refer yourself"


class Tier(str, Enum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    VIP = "VIP"


@dataclass(frozen=True)
class TierRule:
    tier: Tier
    badge: str
    rate: Decimal
    min_referrals: int

    @property
    def rate_percent(self) -> Decimal:
        return (self.rate * 100).normalize()


# Ordered by min_referrals; a tier spans up to the next tier's minimum
TIER_TABLE: tuple[TierRule, ...] = (
    TierRule(Tier.BRONZE, "🥉", Decimal("0.03"), 0),
    TierRule(Tier.SILVER, "🥈", Decimal("0.035"), 5),
    TierRule(Tier.GOLD, "🥇", Decimal("0.04"), 10),
    TierRule(Tier.VIP, "💎", Decimal("0.05"), 20),
)


@dataclass(frozen=True)
class TierStatus:
    tier: Tier
    badge: str
    rate: Decimal
    next_tier: Optional[Tier]
    referrals_to_next: int


def rule_for(tier: Tier) -> TierRule:
    for rule in TIER_TABLE:
        if rule.tier == tier:
            return rule
    raise KeyError(tier)


def compute_tier(this_month_count: int) -> TierStatus:
    """Tier for a monthly referral count. VIP has no ceiling."""
    if this_month_count < 0:
        raise ValueError("Referral count cannot be negative")

    index = 0
    for i, rule in enumerate(TIER_TABLE):
        if this_month_count >= rule.min_referrals:
            index = i

    current = TIER_TABLE[index]
    upcoming = TIER_TABLE[index + 1] if index + 1 < len(TIER_TABLE) else None
    return TierStatus(
        tier=current.tier,
        badge=current.badge,
        rate=current.rate,
        next_tier=upcoming.tier if upcoming else None,
        referrals_to_next=upcoming.min_referrals - this_month_count if upcoming else 0,
    )


@dataclass(frozen=True)
class RewardPolicy:
    """Accrual percentages. Buyer and referrer rates are set independently."""

    base_buyer_rate: Decimal = Decimal("0.03")
    referred_member_buyer_rate: Decimal = Decimal("0.05")
    referred_guest_buyer_rate: Decimal = Decimal("0.05")
    referrer_rate: Decimal = Decimal("0.03")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RewardPolicy":
        settings = settings or get_settings()
        return cls(
            base_buyer_rate=settings.BASE_BUYER_RATE,
            referred_member_buyer_rate=settings.REFERRED_MEMBER_BUYER_RATE,
            referred_guest_buyer_rate=settings.REFERRED_GUEST_BUYER_RATE,
            referrer_rate=settings.REFERRER_RATE,
        )


@dataclass(frozen=True)
class RewardSplit:
    buyer_rate: Decimal
    referrer_rate: Decimal
    buyer_points: int
    referrer_points: int


def _points(amount: int, rate: Decimal) -> int:
    return int((Decimal(amount) * rate).to_integral_value(rounding=ROUND_FLOOR))


def reward_split(
    order_amount: int,
    referrer_tier: Optional[Tier],
    buyer_is_member: bool,
    policy: Optional[RewardPolicy] = None,
) -> RewardSplit:
    """Points earned on a paid order.

    ``referrer_tier`` is None when the order has no referrer. The referrer's
    tier is shown to them but does not change what they earn.
    """
    policy = policy or RewardPolicy()
    if order_amount < 0:
        raise ValueError("Order amount cannot be negative")

    if referrer_tier is None:
        buyer_rate = policy.base_buyer_rate
        referrer_rate = Decimal("0")
    else:
        buyer_rate = (
            policy.referred_member_buyer_rate if buyer_is_member
            else policy.referred_guest_buyer_rate
        )
        referrer_rate = policy.referrer_rate

    return RewardSplit(
        buyer_rate=buyer_rate,
        referrer_rate=referrer_rate,
        buyer_points=_points(order_amount, buyer_rate),
        referrer_points=_points(order_amount, referrer_rate),
    )


def ensure_not_self_referral(buyer_phone: str, referrer_phone: Optional[str]) -> None:
    referrer = normalize_optional_phone(referrer_phone)
    if referrer is not None and referrer == normalize_optional_phone(buyer_phone):
        raise SelfReferralError()
