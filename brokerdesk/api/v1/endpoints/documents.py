# brokerdesk/api/v1/endpoints/documents.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_admin_identity, get_current_user
from brokerdesk.crud import document as crud_document
from brokerdesk.schemas.document import DocumentCreate, DocumentResponse, DocumentVerify, VerificationStatus
from brokerdesk.services import account_service
from brokerdesk.services.admin_scope import AdminIdentity

router = APIRouter(tags=["documents"])


@router.post("/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def submit_document(
    data: DocumentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    document = await account_service.submit_document(db, current_user, data)
    await db.commit()
    return document


@router.get("/documents", response_model=List[DocumentResponse])
async def list_my_documents(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await crud_document.get_documents_by_user(db, current_user.id)


@router.get("/documents/verification-status", response_model=VerificationStatus)
async def read_verification_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.verification_status(db, current_user)


@router.get("/admin/documents", response_model=List[DocumentResponse])
async def admin_list_documents(
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.list_documents(db, identity, status=status_filter)


@router.patch("/admin/documents/{document_id}/verify", response_model=DocumentResponse)
async def admin_verify_document(
    document_id: int,
    data: DocumentVerify,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    document = await account_service.verify_document(db, document_id, data, identity)
    await db.commit()
    return document
