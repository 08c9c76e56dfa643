# brokerdesk/crud/withdrawal.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.database.models import Withdrawal, WITHDRAWAL_PENDING


async def create_withdrawal(db: AsyncSession, *, user_id: int, **fields) -> Withdrawal:
    withdrawal = Withdrawal(user_id=user_id, status=WITHDRAWAL_PENDING, **fields)
    db.add(withdrawal)
    await db.flush()
    await db.refresh(withdrawal)
    return withdrawal


async def get_withdrawal_with_lock(db: AsyncSession, withdrawal_id: int) -> Optional[Withdrawal]:
    result = await db.execute(
        select(Withdrawal)
        .filter(Withdrawal.id == withdrawal_id)
        .options(selectinload(Withdrawal.user))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_withdrawals_by_user(db: AsyncSession, user_id: int) -> List[Withdrawal]:
    result = await db.execute(
        select(Withdrawal)
        .filter(Withdrawal.user_id == user_id)
        .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
    )
    return list(result.scalars().all())


async def get_all_withdrawals(db: AsyncSession, status: Optional[str] = None) -> List[Withdrawal]:
    query = (
        select(Withdrawal)
        .options(selectinload(Withdrawal.user))
        .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
    )
    if status is not None:
        query = query.filter(Withdrawal.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())
