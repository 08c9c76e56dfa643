# brokerdesk/schemas/trading_account.py

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Literal, Optional
import datetime


class TradingAccountCreate(BaseModel):
    account_type: Literal["Live", "Demo", "Bonus"] = "Live"
    group_name: Optional[str] = Field(None, max_length=100)
    leverage: int = Field(100, ge=1, le=1000)
    currency: str = Field("USD", min_length=3, max_length=10)


class TradingAccountUpdate(BaseModel):
    leverage: int = Field(..., ge=1, le=1000)


class FundAdjustment(BaseModel):
    trading_account_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=1000)


class FundAdjustmentResponse(BaseModel):
    message: str
    account_id: int
    new_balance: Decimal


class TradingAccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    account_number: str
    account_type: str
    group_name: Optional[str] = None
    leverage: int
    balance: Decimal
    currency: str
    enabled: bool
    created_at: Optional[datetime.datetime] = None
