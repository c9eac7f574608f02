from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from orders.models import OrderRequest
from withdrawals.models import BankInfo


class WelcomeRequest(BaseModel):
    phone: str = Field(..., min_length=1)


class ValidateOrderRequest(BaseModel):
    product_id: str = Field(..., alias="productId")
    quantity: int = Field(default=1, ge=1)
    customer_phone: str = Field(..., alias="customerPhone")
    points_to_use: int = Field(default=0, ge=0, alias="pointsToUse")
    referrer_phone: Optional[str] = Field(default=None, alias="referrerPhone")

    model_config = ConfigDict(populate_by_name=True)


class PlaceOrderRequest(OrderRequest):
    transaction_id: str = Field(..., min_length=1, description="Payment provider transaction id")
    discount_amount: Optional[int] = Field(default=None, ge=0, description="Discount shown to the customer")


class BankInfoBody(BaseModel):
    bank_name: str = Field(..., alias="bankName")
    account_number: str = Field(..., alias="accountNumber")
    account_holder: str = Field(..., alias="accountHolder")

    model_config = ConfigDict(populate_by_name=True)

    def to_bank_info(self) -> BankInfo:
        return BankInfo(
            bank_name=self.bank_name,
            account_number=self.account_number,
            account_holder=self.account_holder,
        )


class WithdrawRequestBody(BaseModel):
    phone: str = Field(..., min_length=1)
    amount: int
    bank_info: BankInfoBody = Field(..., alias="bankInfo")

    model_config = ConfigDict(populate_by_name=True)
