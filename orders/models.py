from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from stores.models import Address, MatchWarning


class ProductLine(BaseModel):
    product_type: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit_price: int = Field(..., gt=0)
    quantity: int = Field(default=1, ge=1)


class OrderRequest(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_is_member: bool = False
    recipient_name: str = Field(..., min_length=1)
    recipient_phone: str = Field(..., min_length=1)
    address: Address
    product: ProductLine
    additional_fee: int = Field(default=0, ge=0)
    additional_fee_reason: Optional[str] = None
    receiver_store_id: Optional[str] = None
    referrer_phone: Optional[str] = None
    points_requested: int = Field(default=0, ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)

    @property
    def subtotal(self) -> int:
        return self.product.unit_price * self.product.quantity


class PricedOrder(BaseModel):
    order: OrderRequest
    subtotal: int
    additional_fee: int
    discount_amount: int
    total_amount: int
    available_balance: int
    discount_entry_ids: list[UUID] = Field(default_factory=list)
    warnings: list[MatchWarning] = Field(default_factory=list)


class OrderRecord(BaseModel):
    id: UUID
    order_number: str
    transaction_id: str
    customer_name: str
    customer_phone: str
    customer_is_member: bool = False
    recipient_name: str
    recipient_phone: str
    address: Address
    product: ProductLine
    additional_fee: int = 0
    additional_fee_reason: Optional[str] = None
    receiver_store_id: Optional[str] = None
    referrer_phone: Optional[str] = None
    subtotal: int
    discount_amount: int
    total_amount: int
    points_earned: int = 0
    referrer_points: int = 0
    consumed_entry_ids: list[UUID] = Field(default_factory=list)
    granted_entry_ids: list[UUID] = Field(default_factory=list)
    status: str = "confirmed"
    dispatch_deadline: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderConfirmation(BaseModel):
    order_id: UUID
    order_number: str
    transaction_id: str
    total_amount: int
    discount_amount: int
    points_earned: int
    referrer_points: int
    consumed_entry_ids: list[UUID]
    granted_entry_ids: list[UUID]
    receiver_store_id: Optional[str] = None
    dispatch_deadline: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: OrderRecord) -> "OrderConfirmation":
        return cls(
            order_id=record.id,
            order_number=record.order_number,
            transaction_id=record.transaction_id,
            total_amount=record.total_amount,
            discount_amount=record.discount_amount,
            points_earned=record.points_earned,
            referrer_points=record.referrer_points,
            consumed_entry_ids=record.consumed_entry_ids,
            granted_entry_ids=record.granted_entry_ids,
            receiver_store_id=record.receiver_store_id,
            dispatch_deadline=record.dispatch_deadline,
        )


class StoreSettlementEntry(BaseModel):
    """Commission is charged to the fulfilling store, never to the buyer."""

    id: UUID
    store_id: str
    order_id: UUID
    gross_amount: int
    commission_rate: Decimal
    commission: int
    net_amount: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Product(BaseModel):
    id: str
    product_type: str
    name: str
    customer_price: int = Field(..., gt=0)
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class OrderValidation(BaseModel):
    valid: bool
    base_amount: int
    discount_amount: int
    final_amount: int
    points_verified: bool
