# brokerdesk/schemas/admin_user.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
import datetime

from brokerdesk.services.admin_scope import AdminRole


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: AdminRole = AdminRole.NORMAL_ADMIN


class AdminUpdate(BaseModel):
    """Partial update; fields left out are unchanged."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[AdminRole] = None
    enabled: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8)


class CountryAssignmentCreate(BaseModel):
    country: str = Field(..., min_length=1, max_length=100)


class CountryAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    admin_id: int
    country: str
    created_at: Optional[datetime.datetime] = None


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    role: str
    enabled: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime.datetime] = None
    countries: List[str] = []
