from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .tiers import Tier


class ReferralStats(BaseModel):
    """Serialised with camelCase keys (``totalReferrals``, ``currentTier`` ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_phone: str
    total_referrals: int = 0
    this_month: int = 0
    last_month: int = 0
    current_tier: Tier = Tier.BRONZE
    next_tier: Optional[Tier] = None
    referrals_to_next: int = 0
    reward_rate: Decimal = Field(..., description="Display percentage, e.g. 3.5")
    badge: str
    total_earned: int = 0
    pending_rewards: int = 0


class ReferralHistoryItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    order_number: str
    buyer_name: str = Field(..., description="Masked, e.g. 김**")
    order_date: datetime
    order_amount: int
    earned_points: int
    status: str


class ReferralHistory(BaseModel):
    customer_phone: str
    referrals: list[ReferralHistoryItem]
