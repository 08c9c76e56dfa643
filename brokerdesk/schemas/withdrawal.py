# brokerdesk/schemas/withdrawal.py

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional
import datetime


class WithdrawalCreate(BaseModel):
    account_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: str = Field(..., min_length=1, max_length=50)
    currency: Optional[str] = Field(None, min_length=3, max_length=10, description="Defaults to the trading account currency")
    bank_name: Optional[str] = Field(None, max_length=255)
    bank_account_number: Optional[str] = Field(None, max_length=100)
    account_holder_name: Optional[str] = Field(None, max_length=255)
    swift_code: Optional[str] = Field(None, max_length=50)
    wallet_address: Optional[str] = Field(None, max_length=255)


class WithdrawalReject(BaseModel):
    reason: Optional[str] = None


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    account_id: int
    method: str
    amount: Decimal
    currency: str
    status: str
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    swift_code: Optional[str] = None
    wallet_address: Optional[str] = None
    rejection_reason: Optional[str] = None
    processed_by: Optional[int] = None
    created_at: Optional[datetime.datetime] = None
    processed_at: Optional[datetime.datetime] = None
