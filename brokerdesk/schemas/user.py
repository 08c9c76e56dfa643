# brokerdesk/schemas/user.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
import datetime


class UserSignup(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    ref: Optional[str] = Field(None, description="Referral code or a signup link containing ref=<code>")


class UserSignin(BaseModel):
    email: EmailStr
    password: str


class UserProfileUpdate(BaseModel):
    """Fields a client may change on their own profile. Email, password and referral data are not editable here."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)


class UserResponse(BaseModel):
    """Client profile as returned to the client and to admins."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    referral_id: str
    referred_by_id: Optional[int] = None
    referral_status: Optional[str] = None
    verified: bool
    enabled: bool
    created_at: Optional[datetime.datetime] = None


class UserEnabledResponse(BaseModel):
    id: int
    enabled: bool


class ReferrerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    referral_id: str


class ReferralResponse(BaseModel):
    """A referred user together with the referrer they signed up under."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    country: Optional[str] = None
    referral_status: Optional[str] = None
    referral_rejection_reason: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    referrer: Optional[ReferrerSummary] = None


class ReferralRejectRequest(BaseModel):
    reason: Optional[str] = None
