# brokerdesk/crud/trading_account.py

import random
import string
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.database.models import TradingAccount

logger = logging.getLogger(__name__)


async def get_account(db: AsyncSession, account_id: int) -> Optional[TradingAccount]:
    return await db.get(TradingAccount, account_id)


async def get_account_by_number(db: AsyncSession, account_number: str) -> Optional[TradingAccount]:
    result = await db.execute(select(TradingAccount).filter(TradingAccount.account_number == account_number))
    return result.scalars().first()


async def generate_unique_account_number(db: AsyncSession) -> str:
    while True:
        account_number = ''.join(random.choices(string.digits, k=8))
        if await get_account_by_number(db, account_number) is None:
            return account_number


async def create_account(
    db: AsyncSession,
    *,
    user_id: int,
    account_type: str,
    group_name: Optional[str],
    leverage: int,
    currency: str,
) -> TradingAccount:
    account = TradingAccount(
        user_id=user_id,
        account_number=await generate_unique_account_number(db),
        account_type=account_type,
        group_name=group_name,
        leverage=leverage,
        currency=currency,
        balance=Decimal("0.00"),
    )
    db.add(account)
    await db.flush()
    await db.refresh(account)
    logger.info(f"Created {account_type} trading account {account.account_number} for user ID {user_id}")
    return account


async def get_accounts_by_user(db: AsyncSession, user_id: int) -> List[TradingAccount]:
    result = await db.execute(
        select(TradingAccount)
        .filter(TradingAccount.user_id == user_id)
        .order_by(TradingAccount.created_at.desc(), TradingAccount.id.desc())
    )
    return list(result.scalars().all())


async def get_all_accounts(db: AsyncSession) -> List[TradingAccount]:
    """All accounts with their owners loaded, for country scoping."""
    result = await db.execute(
        select(TradingAccount)
        .options(selectinload(TradingAccount.user))
        .order_by(TradingAccount.created_at.desc(), TradingAccount.id.desc())
    )
    return list(result.scalars().all())


async def credit_balance(db: AsyncSession, account_id: int, amount: Decimal) -> None:
    """Atomic balance increment at the storage layer."""
    await db.execute(
        update(TradingAccount)
        .where(TradingAccount.id == account_id)
        .values(balance=TradingAccount.balance + amount)
        .execution_options(synchronize_session=False)
    )


async def debit_balance_if_sufficient(db: AsyncSession, account_id: int, amount: Decimal) -> bool:
    """
    Decrements the balance only when it covers ``amount``.
    Returns False (and changes nothing) when the balance is too low.
    """
    result = await db.execute(
        update(TradingAccount)
        .where(TradingAccount.id == account_id, TradingAccount.balance >= amount)
        .values(balance=TradingAccount.balance - amount)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
