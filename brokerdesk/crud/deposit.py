# brokerdesk/crud/deposit.py

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.core.logging_config import deposits_logger
from brokerdesk.database.models import Deposit, DEPOSIT_PENDING


async def create_deposit(
    db: AsyncSession,
    *,
    user_id: int,
    account_id: int,
    merchant: str,
    amount: Decimal,
    currency: str,
    transaction_id: Optional[str] = None,
) -> Deposit:
    deposit = Deposit(
        user_id=user_id,
        account_id=account_id,
        merchant=merchant,
        amount=amount,
        currency=currency,
        status=DEPOSIT_PENDING,
        transaction_id=transaction_id,
    )
    db.add(deposit)
    await db.flush()
    await db.refresh(deposit)
    deposits_logger.info(f"Deposit ID {deposit.id} created - User ID: {user_id}, Account ID: {account_id}, Amount: {amount} via {merchant}")
    return deposit


async def get_deposit(db: AsyncSession, deposit_id: int) -> Optional[Deposit]:
    return await db.get(Deposit, deposit_id)


async def get_deposit_with_lock(db: AsyncSession, deposit_id: int) -> Optional[Deposit]:
    """
    Locks the deposit row so two completion events for the same deposit
    (admin approval racing a gateway callback) are processed one after the other.
    """
    result = await db.execute(
        select(Deposit)
        .filter(Deposit.id == deposit_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_deposits_by_user(db: AsyncSession, user_id: int) -> List[Deposit]:
    result = await db.execute(
        select(Deposit)
        .filter(Deposit.user_id == user_id)
        .order_by(Deposit.created_at.desc(), Deposit.id.desc())
    )
    return list(result.scalars().all())


async def get_all_deposits(db: AsyncSession, status: Optional[str] = None) -> List[Deposit]:
    query = (
        select(Deposit)
        .options(selectinload(Deposit.user))
        .order_by(Deposit.created_at.desc(), Deposit.id.desc())
    )
    if status is not None:
        query = query.filter(Deposit.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())
