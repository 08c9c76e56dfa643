# brokerdesk/schemas/deposit.py

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional
import datetime


class DepositCreate(BaseModel):
    account_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    merchant: str = Field("Bank Transfer", min_length=1, max_length=50)
    currency: Optional[str] = Field(None, min_length=3, max_length=10, description="Defaults to the trading account currency")
    transaction_id: Optional[str] = Field(None, max_length=100, description="Bank or processor reference")


class DepositApprove(BaseModel):
    """Admin approval; ``amount`` overrides the requested amount with the amount actually received."""
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)


class DepositReject(BaseModel):
    reason: Optional[str] = None


class DepositResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    account_id: int
    merchant: str
    amount: Decimal
    currency: str
    status: str
    transaction_id: Optional[str] = None
    rejection_reason: Optional[str] = None
    processed_by: Optional[int] = None
    created_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None


class DepositApprovalResponse(DepositResponse):
    commission_credited: Optional[Decimal] = None
