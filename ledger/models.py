from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


class OriginType(str, Enum):
    PURCHASE = "purchase"
    REFERRAL = "referral"
    WELCOME = "welcome"


class LedgerEntryInput(BaseModel):
    customer_phone: str = Field(..., description="Digits-only phone of the owner")
    amount: int = Field(..., gt=0, description="Whole won")
    origin_type: OriginType
    source_order_id: Optional[UUID] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "customer_phone": "01012345678",
            "amount": 3000,
            "origin_type": "purchase",
        }
    })


class LedgerEntry(BaseModel):
    id: UUID
    customer_phone: str
    code: str
    amount: int = Field(..., gt=0)
    origin_type: OriginType
    created_at: datetime
    expires_at: datetime
    used_at: Optional[datetime] = None
    consumed_by_order_id: Optional[UUID] = None
    source_order_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_available(self, now: datetime) -> bool:
        return self.used_at is None and self.expires_at > now


class BalanceBreakdown(BaseModel):
    purchase: int = 0
    referral: int = 0
    welcome: int = 0

    def total(self) -> int:
        return self.purchase + self.referral + self.welcome


class CouponBalance(BaseModel):
    customer_phone: str
    total: int = 0
    available: int = 0
    breakdown: BalanceBreakdown = Field(default_factory=BalanceBreakdown)
    count: int = 0
    coupons: list[LedgerEntry] = Field(default_factory=list)


class LedgerHistoryResponse(BaseModel):
    customer_phone: str
    entries: list[LedgerEntry]
    total_count: int
    available_balance: int
