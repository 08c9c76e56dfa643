# brokerdesk/schemas/document.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
import datetime


class DocumentCreate(BaseModel):
    doc_type: Literal["id_proof", "address_proof", "bank_statement", "selfie", "other"]
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=512)


class DocumentVerify(BaseModel):
    status: Literal["Verified", "Rejected"]
    reason: Optional[str] = None


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    doc_type: str
    file_name: str
    file_url: str
    status: str
    rejection_reason: Optional[str] = None
    verified_by: Optional[int] = None
    uploaded_at: Optional[datetime.datetime] = None
    verified_at: Optional[datetime.datetime] = None


class VerificationStatus(BaseModel):
    verified: bool
    documents: int
    pending: int
    rejected: int
