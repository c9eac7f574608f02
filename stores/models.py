from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Address(BaseModel):
    """Delivery address as returned by the geocoding widget, all parts required."""

    sido: str = Field(..., min_length=1)
    sigungu: str = Field(..., min_length=1)
    dong: str = Field(..., min_length=1)
    detail: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)


class DeliveryArea(BaseModel):
    sido: str
    sigungu: str
    min_amount: Optional[int] = Field(default=None, ge=0)


class AreaPricing(BaseModel):
    product_type: str
    price_basic: int = Field(..., gt=0)
    price_premium: Optional[int] = Field(default=None, gt=0)


class Store(BaseModel):
    id: str
    business_name: str
    is_open: bool = True
    delivery_areas: list[DeliveryArea] = Field(default_factory=list)
    area_pricing: list[AreaPricing] = Field(default_factory=list)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)

    model_config = ConfigDict(from_attributes=True)

    def pricing_for(self, product_type: str) -> Optional[AreaPricing]:
        for pricing in self.area_pricing:
            if pricing.product_type == product_type:
                return pricing
        return None


class MatchWarning(str, Enum):
    NO_ELIGIBLE_STORE = "NO_ELIGIBLE_STORE"
    NO_AREA_PRICING = "NO_AREA_PRICING"


class PriceSource(str, Enum):
    AREA_PRICING = "area_pricing"
    BASE_PRICE = "base_price"


class ResolvedPrice(BaseModel):
    price: int
    source: PriceSource
    warning: Optional[MatchWarning] = None


class StoreCandidate(BaseModel):
    store_id: str
    business_name: str
    min_amount: Optional[int] = None
    price: Optional[ResolvedPrice] = None


class CentralDispatchOption(BaseModel):
    receiver_store_id: None = None
    label: str = "central dispatch"
    sla_minutes: int


class StoreMatchResult(BaseModel):
    sido: str
    sigungu: str
    candidates: list[StoreCandidate]
    central_dispatch: CentralDispatchOption
    warnings: list[MatchWarning] = Field(default_factory=list)
