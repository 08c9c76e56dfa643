# brokerdesk/services/withdrawal_service.py

import datetime
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import InsufficientBalance, InvalidStateTransition, NotFound, ValidationError
from brokerdesk.core.logging_config import deposits_logger
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.crud import withdrawal as crud_withdrawal
from brokerdesk.database.models import (
    User,
    Withdrawal,
    WITHDRAWAL_APPROVED,
    WITHDRAWAL_PENDING,
    WITHDRAWAL_REJECTED,
)
from brokerdesk.schemas.withdrawal import WithdrawalCreate
from brokerdesk.services import audit_service, notification_service
from brokerdesk.services.admin_scope import AdminIdentity
from brokerdesk.services.deposit_service import account_currency, get_owned_account


async def request_withdrawal(db: AsyncSession, user: User, data: WithdrawalCreate) -> Withdrawal:
    account = await get_owned_account(db, user, data.account_id)
    currency = account_currency(account, data.currency)
    if data.amount > account.balance:
        raise InsufficientBalance(f"Insufficient balance: requested {data.amount}, available {account.balance}")

    withdrawal = await crud_withdrawal.create_withdrawal(db, user_id=user.id, **data.model_dump(exclude={"currency"}), currency=currency)
    deposits_logger.info(f"Withdrawal ID {withdrawal.id} requested - User ID: {user.id}, Account ID: {account.id}, Amount: {data.amount}")
    return withdrawal


async def _locked_scoped_withdrawal(db: AsyncSession, withdrawal_id: int, identity: AdminIdentity) -> Withdrawal:
    withdrawal = await crud_withdrawal.get_withdrawal_with_lock(db, withdrawal_id)
    if withdrawal is None or not identity.can_see(withdrawal.user.country):
        raise NotFound(f"Withdrawal {withdrawal_id} not found")
    return withdrawal


async def approve_withdrawal(
    db: AsyncSession,
    withdrawal_id: int,
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> Withdrawal:
    """Debits the trading account; refused without changes if the balance no longer covers it."""
    withdrawal = await _locked_scoped_withdrawal(db, withdrawal_id, identity)
    if withdrawal.status != WITHDRAWAL_PENDING:
        raise InvalidStateTransition("withdrawal", withdrawal.status, "approve")

    if not await crud_trading_account.debit_balance_if_sufficient(db, withdrawal.account_id, withdrawal.amount):
        raise InsufficientBalance(f"Trading account {withdrawal.account_id} no longer covers {withdrawal.amount}")

    withdrawal.status = WITHDRAWAL_APPROVED
    withdrawal.processed_by = identity.admin_id
    withdrawal.processed_at = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    await db.flush()
    await db.refresh(withdrawal)
    deposits_logger.info(f"Withdrawal ID {withdrawal.id} approved by admin ID {identity.admin_id}; debited {withdrawal.amount}")

    await audit_service.log_activity(
        db, identity.admin_id, "approve_withdrawal", "withdrawal", withdrawal.id,
        f"Approved {withdrawal.amount} {withdrawal.currency}", user_id=withdrawal.user_id,
    )
    await notification_service.notify(
        db, withdrawal.user_id, "Withdrawal approved",
        f"Your withdrawal of {withdrawal.amount} {withdrawal.currency} has been approved.",
        type="success", redis_client=redis_client,
    )
    return withdrawal


async def reject_withdrawal(
    db: AsyncSession,
    withdrawal_id: int,
    reason: Optional[str],
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> Withdrawal:
    if reason is None or not reason.strip():
        raise ValidationError("A rejection reason is required")
    withdrawal = await _locked_scoped_withdrawal(db, withdrawal_id, identity)
    if withdrawal.status != WITHDRAWAL_PENDING:
        raise InvalidStateTransition("withdrawal", withdrawal.status, "reject")

    withdrawal.status = WITHDRAWAL_REJECTED
    withdrawal.rejection_reason = reason.strip()
    withdrawal.processed_by = identity.admin_id
    withdrawal.processed_at = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    await db.flush()
    await db.refresh(withdrawal)

    await audit_service.log_activity(
        db, identity.admin_id, "reject_withdrawal", "withdrawal", withdrawal.id,
        f"Rejected: {withdrawal.rejection_reason}", user_id=withdrawal.user_id,
    )
    await notification_service.notify(
        db, withdrawal.user_id, "Withdrawal rejected",
        f"Your withdrawal of {withdrawal.amount} {withdrawal.currency} was rejected. Reason: {withdrawal.rejection_reason}",
        type="error", redis_client=redis_client,
    )
    return withdrawal


async def list_withdrawals(db: AsyncSession, identity: AdminIdentity, status: Optional[str] = None) -> List[Withdrawal]:
    withdrawals = await crud_withdrawal.get_all_withdrawals(db, status=status)
    return identity.filter(withdrawals, lambda withdrawal: withdrawal.user.country)
