# brokerdesk/schemas/ib_wallet.py

from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import List, Optional
import datetime


class CommissionRateUpdate(BaseModel):
    # Range is checked by the commission service so the error reads as a business rule
    rate: Decimal


class PayoutRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=1000)


class WalletOwner(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    country: Optional[str] = None


class IbWalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    wallet_type: str
    balance: Decimal
    currency: str
    commission_rate: Decimal
    total_commission: Decimal
    enabled: bool
    created_at: Optional[datetime.datetime] = None


class IbWalletWithOwner(IbWalletResponse):
    user: Optional[WalletOwner] = None


class WalletTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wallet_id: int
    entry_type: str
    amount: Decimal
    deposit_id: Optional[int] = None
    source_user_id: Optional[int] = None
    admin_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


class ReferralSummary(BaseModel):
    user_id: int
    full_name: str
    email: str
    country: Optional[str] = None
    referral_status: Optional[str] = None
    joined_at: Optional[datetime.datetime] = None
    commission_earned: Decimal


class IbStatsResponse(BaseModel):
    referral_id: str
    referral_link: str
    total_referrals: int
    accepted_referrals: int
    pending_referrals: int
    rejected_referrals: int
    wallet_enabled: bool
    balance: Decimal
    total_commission: Decimal
    commission_rate: Decimal
    referrals: List[ReferralSummary]
