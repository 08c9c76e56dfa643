# brokerdesk/crud/document.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.database.models import Document, DOCUMENT_PENDING


async def create_document(db: AsyncSession, *, user_id: int, doc_type: str, file_name: str, file_url: str) -> Document:
    document = Document(
        user_id=user_id,
        doc_type=doc_type,
        file_name=file_name,
        file_url=file_url,
        status=DOCUMENT_PENDING,
    )
    db.add(document)
    await db.flush()
    await db.refresh(document)
    return document


async def get_document(db: AsyncSession, document_id: int) -> Optional[Document]:
    result = await db.execute(
        select(Document)
        .filter(Document.id == document_id)
        .options(selectinload(Document.user))
    )
    return result.scalars().first()


async def get_documents_by_user(db: AsyncSession, user_id: int) -> List[Document]:
    result = await db.execute(
        select(Document)
        .filter(Document.user_id == user_id)
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
    )
    return list(result.scalars().all())


async def get_all_documents(db: AsyncSession, status: Optional[str] = None) -> List[Document]:
    query = (
        select(Document)
        .options(selectinload(Document.user))
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
    )
    if status is not None:
        query = query.filter(Document.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())
