from datetime import datetime
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class WithdrawalStatus(str, Enum):
    PENDING = "pending"


class BankInfo(BaseModel):
    bank_name: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    account_holder: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)


class WithdrawalRequest(BaseModel):
    id: UUID
    customer_phone: str
    amount: int
    bank_info: BankInfo
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    consumed_entry_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WithdrawableAmount(BaseModel):
    total_points: int
    withdrawable_amount: int
    can_withdraw: bool
