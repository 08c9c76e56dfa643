# brokerdesk/services/stats_service.py

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.crud import deposit as crud_deposit
from brokerdesk.crud import notification as crud_notification
from brokerdesk.crud import document as crud_document
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.crud import user as crud_user
from brokerdesk.crud import withdrawal as crud_withdrawal
from brokerdesk.database.models import (
    DEPOSIT_CREDITED_STATUSES,
    DEPOSIT_PENDING,
    DOCUMENT_PENDING,
    REFERRAL_PENDING,
    User,
    WITHDRAWAL_APPROVED,
    WITHDRAWAL_PENDING,
)
from brokerdesk.services.admin_scope import AdminIdentity


async def admin_stats(db: AsyncSession, identity: AdminIdentity) -> dict:
    """Dashboard counters, computed over the rows this admin is allowed to see."""
    users = identity.filter(await crud_user.get_all_users(db), lambda u: u.country)
    documents = identity.filter(await crud_document.get_all_documents(db), lambda d: d.user.country)
    accounts = identity.filter(await crud_trading_account.get_all_accounts(db), lambda a: a.user.country)
    deposits = identity.filter(await crud_deposit.get_all_deposits(db), lambda d: d.user.country)
    withdrawals = identity.filter(await crud_withdrawal.get_all_withdrawals(db), lambda w: w.user.country)

    credited = [d for d in deposits if d.status in DEPOSIT_CREDITED_STATUSES]
    approved_withdrawals = [w for w in withdrawals if w.status == WITHDRAWAL_APPROVED]
    return {
        "total_users": len(users),
        "active_users": sum(1 for u in users if u.enabled),
        "verified_users": sum(1 for u in users if u.verified),
        "pending_documents": sum(1 for d in documents if d.status == DOCUMENT_PENDING),
        "trading_accounts": len(accounts),
        "pending_deposits": sum(1 for d in deposits if d.status == DEPOSIT_PENDING),
        "credited_deposits": len(credited),
        "credited_deposit_total": sum((Decimal(d.amount) for d in credited), Decimal("0.00")),
        "pending_withdrawals": sum(1 for w in withdrawals if w.status == WITHDRAWAL_PENDING),
        "approved_withdrawal_total": sum((Decimal(w.amount) for w in approved_withdrawals), Decimal("0.00")),
        "pending_referrals": sum(1 for u in users if u.referral_status == REFERRAL_PENDING),
    }


async def client_stats(db: AsyncSession, user: User) -> dict:
    accounts = await crud_trading_account.get_accounts_by_user(db, user.id)
    deposits = await crud_deposit.get_deposits_by_user(db, user.id)
    withdrawals = await crud_withdrawal.get_withdrawals_by_user(db, user.id)
    unread = await crud_notification.get_notifications_by_user(db, user.id, unread_only=True)

    balances: dict[str, Decimal] = {}
    for account in accounts:
        balances[account.currency] = balances.get(account.currency, Decimal("0.00")) + Decimal(account.balance)
    return {
        "balances": balances,
        "total_accounts": len(accounts),
        "enabled_accounts": sum(1 for a in accounts if a.enabled),
        "credited_deposits": sum(1 for d in deposits if d.status in DEPOSIT_CREDITED_STATUSES),
        "pending_deposits": sum(1 for d in deposits if d.status == DEPOSIT_PENDING),
        "pending_withdrawals": sum(1 for w in withdrawals if w.status == WITHDRAWAL_PENDING),
        "unread_notifications": len(unread),
    }
