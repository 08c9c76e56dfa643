# brokerdesk/crud/ib_wallet.py

from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from brokerdesk.core.logging_config import commissions_logger
from brokerdesk.database.models import (
    IbCbWallet,
    IbWalletTransaction,
    WALLET_ENTRY_COMMISSION,
    WALLET_TYPE_IB,
)


async def get_wallet(
    db: AsyncSession,
    user_id: int,
    wallet_type: str = WALLET_TYPE_IB,
    lock: bool = False,
) -> Optional[IbCbWallet]:
    query = select(IbCbWallet).filter(IbCbWallet.user_id == user_id, IbCbWallet.wallet_type == wallet_type)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalars().first()


async def get_or_create_wallet(
    db: AsyncSession,
    user_id: int,
    *,
    commission_rate: Decimal,
    currency: str,
    wallet_type: str = WALLET_TYPE_IB,
) -> tuple[IbCbWallet, bool]:
    """
    Returns (wallet, created). The insert runs in a SAVEPOINT; if a concurrent
    request created the wallet first, the unique (user_id, wallet_type) index
    rejects ours and the existing row is returned instead.
    """
    wallet = await get_wallet(db, user_id, wallet_type, lock=True)
    if wallet is not None:
        return wallet, False

    try:
        async with db.begin_nested():
            wallet = IbCbWallet(
                user_id=user_id,
                wallet_type=wallet_type,
                commission_rate=commission_rate,
                currency=currency,
                balance=Decimal("0.00"),
                total_commission=Decimal("0.00"),
                enabled=True,
            )
            db.add(wallet)
            await db.flush()
    except IntegrityError:
        commissions_logger.info(f"{wallet_type} wallet for user ID {user_id} created concurrently; reusing it")
        existing = await get_wallet(db, user_id, wallet_type, lock=True)
        if existing is None:
            raise
        return existing, False

    await db.refresh(wallet)
    commissions_logger.info(f"Created {wallet_type} wallet ID {wallet.id} for user ID {user_id} at rate {commission_rate}%")
    return wallet, True


async def get_all_wallets(db: AsyncSession, wallet_type: Optional[str] = None) -> List[IbCbWallet]:
    query = (
        select(IbCbWallet)
        .options(selectinload(IbCbWallet.user))
        .order_by(IbCbWallet.created_at.desc(), IbCbWallet.id.desc())
    )
    if wallet_type is not None:
        query = query.filter(IbCbWallet.wallet_type == wallet_type)
    result = await db.execute(query)
    return list(result.scalars().all())


async def credit_wallet(db: AsyncSession, wallet_id: int, amount: Decimal) -> None:
    """
    Increments balance and total_commission together in one UPDATE so they can
    never drift apart and concurrent credits do not lose updates.
    """
    await db.execute(
        update(IbCbWallet)
        .where(IbCbWallet.id == wallet_id)
        .values(
            balance=IbCbWallet.balance + amount,
            total_commission=IbCbWallet.total_commission + amount,
        )
        .execution_options(synchronize_session=False)
    )


async def debit_wallet_if_sufficient(db: AsyncSession, wallet_id: int, amount: Decimal) -> bool:
    """
    Decrements balance (never total_commission) when it covers ``amount``.
    Returns False without touching the row otherwise.
    """
    result = await db.execute(
        update(IbCbWallet)
        .where(IbCbWallet.id == wallet_id, IbCbWallet.balance >= amount)
        .values(balance=IbCbWallet.balance - amount)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def get_commission_entry_for_deposit(db: AsyncSession, deposit_id: int) -> Optional[IbWalletTransaction]:
    result = await db.execute(
        select(IbWalletTransaction).filter(IbWalletTransaction.deposit_id == deposit_id)
    )
    return result.scalars().first()


async def add_transaction(db: AsyncSession, **fields) -> IbWalletTransaction:
    entry = IbWalletTransaction(**fields)
    db.add(entry)
    await db.flush()
    return entry


async def get_transactions(db: AsyncSession, wallet_id: int) -> List[IbWalletTransaction]:
    result = await db.execute(
        select(IbWalletTransaction)
        .filter(IbWalletTransaction.wallet_id == wallet_id)
        .order_by(IbWalletTransaction.created_at.desc(), IbWalletTransaction.id.desc())
    )
    return list(result.scalars().all())


async def get_commission_by_source(db: AsyncSession, wallet_id: int) -> Dict[int, Decimal]:
    """Commission earned per referred user for one wallet."""
    result = await db.execute(
        select(IbWalletTransaction.source_user_id, func.sum(IbWalletTransaction.amount))
        .filter(
            IbWalletTransaction.wallet_id == wallet_id,
            IbWalletTransaction.entry_type == WALLET_ENTRY_COMMISSION,
        )
        .group_by(IbWalletTransaction.source_user_id)
    )
    return {source_id: Decimal(str(total)).quantize(Decimal("0.01")) for source_id, total in result.all() if source_id is not None}
