# brokerdesk/services/deposit_service.py

"""
Deposit lifecycle: Pending -> Approved/Completed (funds credited) or
Pending -> Rejected/Failed.

``complete_deposit`` is the single place where a deposit becomes credited.
Admin approval and the payment gateway webhook are thin adapters over it, so
both paths share the same balance credit and the same commission settlement.
"""

import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import Forbidden, InvalidStateTransition, NotFound, ValidationError
from brokerdesk.core.logging_config import deposits_logger
from brokerdesk.crud import deposit as crud_deposit
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.crud import user as crud_user
from brokerdesk.database.models import (
    Deposit,
    User,
    DEPOSIT_APPROVED,
    DEPOSIT_CREDITED_STATUSES,
    DEPOSIT_FAILED,
    DEPOSIT_PENDING,
    DEPOSIT_REJECTED,
)
from brokerdesk.schemas.deposit import DepositCreate
from brokerdesk.services import audit_service, notification_service
from brokerdesk.services.admin_scope import AdminIdentity
from brokerdesk.services.commission_service import CENT, settle_deposit_commission


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


async def get_owned_account(db: AsyncSession, user: User, account_id: int):
    account = await crud_trading_account.get_account(db, account_id)
    if account is None or account.user_id != user.id:
        raise NotFound(f"Trading account {account_id} not found")
    if not account.enabled:
        raise Forbidden("Trading account is disabled")
    return account


def account_currency(account, requested: Optional[str]) -> str:
    """Money moves in the account currency only; there is no conversion."""
    if requested is not None and requested.strip().upper() != account.currency.upper():
        raise ValidationError(f"Currency {requested} does not match trading account currency {account.currency}")
    return account.currency


async def create_deposit(db: AsyncSession, user: User, data: DepositCreate) -> Deposit:
    account = await get_owned_account(db, user, data.account_id)
    currency = account_currency(account, data.currency)
    return await crud_deposit.create_deposit(
        db,
        user_id=user.id,
        account_id=account.id,
        merchant=data.merchant,
        amount=data.amount,
        currency=currency,
        transaction_id=data.transaction_id,
    )


async def complete_deposit(
    db: AsyncSession,
    deposit_id: int,
    *,
    credited_status: str = DEPOSIT_APPROVED,
    admin_id: Optional[int] = None,
    amount: Optional[Decimal] = None,
    redis_client: Optional[Redis] = None,
) -> tuple[Deposit, Optional[Decimal]]:
    """
    Moves a Pending deposit into a credited status and applies every effect of
    that transition in the caller's transaction: trading account credit,
    referral commission, depositor notification and audit entry.

    Returns (deposit, commission credited or None). Raises
    InvalidStateTransition when the deposit is not Pending, which is also how
    a replayed completion event is detected.
    """
    if credited_status not in DEPOSIT_CREDITED_STATUSES:
        raise ValueError(f"{credited_status} is not a credited deposit status")

    deposit = await crud_deposit.get_deposit_with_lock(db, deposit_id)
    if deposit is None:
        raise NotFound(f"Deposit {deposit_id} not found")
    if deposit.status != DEPOSIT_PENDING:
        raise InvalidStateTransition("deposit", deposit.status, "complete")

    if amount is not None:
        amount = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
        if amount <= 0:
            raise ValidationError("Deposit amount must be positive")
        if amount != deposit.amount:
            deposits_logger.info(f"Deposit ID {deposit.id} amount adjusted from {deposit.amount} to {amount}")
        deposit.amount = amount

    deposit.status = credited_status
    deposit.completed_at = _utcnow()
    deposit.processed_by = admin_id
    await db.flush()

    await crud_trading_account.credit_balance(db, deposit.account_id, deposit.amount)
    deposits_logger.info(f"Deposit ID {deposit.id} {credited_status}: credited {deposit.amount} to account ID {deposit.account_id}")

    commission = await settle_deposit_commission(db, deposit, redis_client=redis_client)

    await notification_service.notify(
        db,
        deposit.user_id,
        "Deposit credited",
        f"Your deposit of {deposit.amount} {deposit.currency} has been credited to your trading account.",
        type="success",
        redis_client=redis_client,
    )
    await audit_service.log_activity(
        db,
        admin_id,
        "approve_deposit" if admin_id is not None else "payment_completed",
        "deposit",
        deposit.id,
        f"Deposit of {deposit.amount} {deposit.currency} {credited_status}"
        + (f"; commission {commission}" if commission is not None else ""),
        user_id=deposit.user_id,
    )
    await db.refresh(deposit)
    return deposit, commission


async def _scoped_deposit(db: AsyncSession, deposit_id: int, identity: AdminIdentity) -> Deposit:
    deposit = await crud_deposit.get_deposit(db, deposit_id)
    if deposit is None:
        raise NotFound(f"Deposit {deposit_id} not found")
    owner = await crud_user.get_user(db, deposit.user_id)
    if owner is None or not identity.can_see(owner.country):
        raise NotFound(f"Deposit {deposit_id} not found")
    return deposit


async def approve_deposit(
    db: AsyncSession,
    deposit_id: int,
    identity: AdminIdentity,
    amount: Optional[Decimal] = None,
    redis_client: Optional[Redis] = None,
) -> tuple[Deposit, Optional[Decimal]]:
    await _scoped_deposit(db, deposit_id, identity)
    return await complete_deposit(
        db,
        deposit_id,
        credited_status=DEPOSIT_APPROVED,
        admin_id=identity.admin_id,
        amount=amount,
        redis_client=redis_client,
    )


async def reject_deposit(
    db: AsyncSession,
    deposit_id: int,
    reason: Optional[str],
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> Deposit:
    if reason is None or not reason.strip():
        raise ValidationError("A rejection reason is required")
    await _scoped_deposit(db, deposit_id, identity)

    deposit = await crud_deposit.get_deposit_with_lock(db, deposit_id)
    if deposit.status != DEPOSIT_PENDING:
        raise InvalidStateTransition("deposit", deposit.status, "reject")

    deposit.status = DEPOSIT_REJECTED
    deposit.rejection_reason = reason.strip()
    deposit.processed_by = identity.admin_id
    deposit.completed_at = _utcnow()
    await db.flush()
    await db.refresh(deposit)
    deposits_logger.info(f"Deposit ID {deposit.id} rejected by admin ID {identity.admin_id}: {deposit.rejection_reason}")

    await audit_service.log_activity(
        db, identity.admin_id, "reject_deposit", "deposit", deposit.id,
        f"Rejected: {deposit.rejection_reason}", user_id=deposit.user_id,
    )
    await notification_service.notify(
        db,
        deposit.user_id,
        "Deposit rejected",
        f"Your deposit of {deposit.amount} {deposit.currency} was rejected. Reason: {deposit.rejection_reason}",
        type="error",
        redis_client=redis_client,
    )
    return deposit


async def fail_deposit(db: AsyncSession, deposit_id: int, reason: str) -> Deposit:
    """Marks a Pending deposit Failed after the gateway reported a failed payment."""
    deposit = await crud_deposit.get_deposit_with_lock(db, deposit_id)
    if deposit is None:
        raise NotFound(f"Deposit {deposit_id} not found")
    if deposit.status != DEPOSIT_PENDING:
        raise InvalidStateTransition("deposit", deposit.status, "fail")
    deposit.status = DEPOSIT_FAILED
    deposit.rejection_reason = reason
    deposit.completed_at = _utcnow()
    await db.flush()
    await db.refresh(deposit)
    await audit_service.log_activity(db, None, "payment_failed", "deposit", deposit.id, reason, user_id=deposit.user_id)
    return deposit


async def list_deposits(db: AsyncSession, identity: AdminIdentity, status: Optional[str] = None) -> List[Deposit]:
    deposits = await crud_deposit.get_all_deposits(db, status=status)
    return identity.filter(deposits, lambda deposit: deposit.user.country)
