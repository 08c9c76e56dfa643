# brokerdesk/services/commission_service.py

"""
Commission settlement engine.

``settle_deposit_commission`` is the only code path that credits commission.
It is invoked from ``deposit_service.complete_deposit``, which serves both the
admin approval endpoint and the payment gateway webhook.

Money is handled as ``Decimal`` end to end. Commission is rounded to cents
(ROUND_HALF_UP) before it is credited so balance and total_commission stay
exact in the DECIMAL(12,2) columns.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.config import get_settings
from brokerdesk.core.exceptions import InsufficientBalance, NotFound, ValidationError
from brokerdesk.core.logging_config import commissions_logger
from brokerdesk.crud import ib_wallet as crud_ib_wallet
from brokerdesk.crud import user as crud_user
from brokerdesk.database.models import (
    Deposit,
    IbCbWallet,
    IbWalletTransaction,
    REFERRAL_ACCEPTED,
    WALLET_ENTRY_COMMISSION,
    WALLET_ENTRY_PAYOUT,
    WALLET_TYPE_IB,
)
from brokerdesk.services import audit_service, notification_service
from brokerdesk.services.admin_scope import AdminIdentity

settings = get_settings()

CENT = Decimal("0.01")
MAX_RATE = Decimal("100")


def compute_commission(amount: Decimal, rate: Decimal) -> Decimal:
    """amount x rate / 100, rounded half-up to cents."""
    return (Decimal(amount) * Decimal(rate) / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_rate(rate: Decimal) -> Decimal:
    rate = Decimal(rate)
    if rate < 0 or rate > MAX_RATE:
        raise ValidationError("Commission rate must be between 0 and 100")
    return rate


async def ensure_ib_wallet(db: AsyncSession, user_id: int) -> tuple[IbCbWallet, bool]:
    """Get-or-create the IB wallet of ``user_id`` at the default rate."""
    return await crud_ib_wallet.get_or_create_wallet(
        db,
        user_id,
        commission_rate=settings.DEFAULT_COMMISSION_RATE,
        currency=settings.DEFAULT_CURRENCY,
        wallet_type=WALLET_TYPE_IB,
    )


async def settle_deposit_commission(
    db: AsyncSession,
    deposit: Deposit,
    redis_client: Optional[Redis] = None,
) -> Optional[Decimal]:
    """
    Credits the depositor's referrer for a deposit that has just been credited.

    Returns the commission amount, or None when nothing was settled: the
    depositor has no accepted referral, the referrer's wallet is disabled or
    held in another currency, or this deposit was already settled. The ledger
    row keyed by deposit id is written before the wallet moves, so a replayed
    event cannot credit twice.
    Storage errors propagate and abort the caller's transaction.
    """
    if await crud_ib_wallet.get_commission_entry_for_deposit(db, deposit.id) is not None:
        commissions_logger.info(f"Deposit ID {deposit.id} already settled; skipping commission")
        return None

    depositor = await crud_user.get_user(db, deposit.user_id)
    if depositor is None or depositor.referred_by_id is None or depositor.referral_status != REFERRAL_ACCEPTED:
        commissions_logger.debug(
            f"No commission for deposit ID {deposit.id}: referral status is "
            f"{depositor.referral_status if depositor else 'unknown'}"
        )
        return None

    referrer_id = depositor.referred_by_id
    wallet, created = await ensure_ib_wallet(db, referrer_id)
    if created:
        commissions_logger.info(f"IB wallet for referrer ID {referrer_id} created during settlement of deposit ID {deposit.id}")
    if not wallet.enabled:
        commissions_logger.warning(f"IB wallet ID {wallet.id} of referrer ID {referrer_id} is disabled; deposit ID {deposit.id} earns no commission")
        return None
    if deposit.currency != wallet.currency:
        commissions_logger.warning(
            f"Deposit ID {deposit.id} is in {deposit.currency} but IB wallet ID {wallet.id} holds {wallet.currency}; "
            f"no commission settled"
        )
        return None

    commission = compute_commission(deposit.amount, wallet.commission_rate)
    if commission <= 0:
        commissions_logger.info(f"Deposit ID {deposit.id} yields zero commission at rate {wallet.commission_rate}%")
        return None

    try:
        async with db.begin_nested():
            await crud_ib_wallet.add_transaction(
                db,
                wallet_id=wallet.id,
                entry_type=WALLET_ENTRY_COMMISSION,
                amount=commission,
                deposit_id=deposit.id,
                source_user_id=depositor.id,
                notes=f"{wallet.commission_rate}% of deposit {deposit.amount} {deposit.currency}",
            )
    except IntegrityError:
        commissions_logger.warning(f"Deposit ID {deposit.id} was settled concurrently; skipping commission")
        return None

    await crud_ib_wallet.credit_wallet(db, wallet.id, commission)
    await db.refresh(wallet)
    commissions_logger.info(
        f"Credited {commission} to IB wallet ID {wallet.id} (referrer ID {referrer_id}) for deposit ID {deposit.id}. "
        f"Balance: {wallet.balance}, total commission: {wallet.total_commission}"
    )

    await notification_service.notify(
        db,
        referrer_id,
        "Commission earned",
        f"You earned {commission} {wallet.currency} commission from a deposit by {depositor.full_name}.",
        type="success",
        redis_client=redis_client,
    )
    await audit_service.log_activity(
        db,
        None,
        "commission_credited",
        "ib_wallet",
        wallet.id,
        f"Commission {commission} from deposit {deposit.id} of user {depositor.id}",
        user_id=referrer_id,
    )
    return commission


async def update_commission_rate(
    db: AsyncSession,
    referrer_id: int,
    rate: Decimal,
    identity: AdminIdentity,
) -> IbCbWallet:
    rate = validate_rate(rate)
    if await crud_user.get_user(db, referrer_id) is None:
        raise NotFound(f"User {referrer_id} not found")

    wallet, _ = await ensure_ib_wallet(db, referrer_id)
    previous = wallet.commission_rate
    wallet.commission_rate = rate
    await db.flush()
    await db.refresh(wallet)
    commissions_logger.info(f"Commission rate of IB wallet ID {wallet.id} changed {previous}% -> {rate}% by admin ID {identity.admin_id}")

    await audit_service.log_activity(
        db,
        identity.admin_id,
        "update_commission_rate",
        "ib_wallet",
        wallet.id,
        f"Rate changed from {previous}% to {rate}%",
        user_id=referrer_id,
    )
    return wallet


async def payout(
    db: AsyncSession,
    referrer_id: int,
    amount: Decimal,
    notes: Optional[str],
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> IbCbWallet:
    """
    Pays ``amount`` out of the referrer's IB wallet balance. total_commission
    is lifetime accrual and is left untouched.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError("Payout amount must be positive")

    wallet = await crud_ib_wallet.get_wallet(db, referrer_id, WALLET_TYPE_IB, lock=True)
    if wallet is None:
        raise NotFound(f"IB wallet for user {referrer_id} not found")

    if not await crud_ib_wallet.debit_wallet_if_sufficient(db, wallet.id, amount):
        await db.refresh(wallet)
        commissions_logger.warning(f"Payout of {amount} from IB wallet ID {wallet.id} refused; balance is {wallet.balance}")
        raise InsufficientBalance(f"Insufficient balance: requested {amount}, available {wallet.balance}")

    await crud_ib_wallet.add_transaction(
        db,
        wallet_id=wallet.id,
        entry_type=WALLET_ENTRY_PAYOUT,
        amount=amount,
        admin_id=identity.admin_id,
        notes=notes,
    )
    await db.refresh(wallet)
    commissions_logger.info(f"Paid out {amount} from IB wallet ID {wallet.id} by admin ID {identity.admin_id}. Balance now {wallet.balance}")

    await audit_service.log_activity(
        db,
        identity.admin_id,
        "ib_payout",
        "ib_wallet",
        wallet.id,
        f"Payout {amount}" + (f": {notes}" if notes else ""),
        user_id=referrer_id,
    )
    await notification_service.notify(
        db,
        referrer_id,
        "Commission payout",
        f"A payout of {amount} {wallet.currency} has been made from your IB wallet.",
        type="info",
        redis_client=redis_client,
    )
    return wallet


async def toggle_wallet(db: AsyncSession, referrer_id: int, identity: AdminIdentity) -> IbCbWallet:
    """
    Enables or disables the referrer's IB wallet. A disabled wallet earns no
    commission; accepting a new referral of this referrer enables it again.
    """
    wallet = await crud_ib_wallet.get_wallet(db, referrer_id, WALLET_TYPE_IB, lock=True)
    if wallet is None:
        raise NotFound(f"IB wallet for user {referrer_id} not found")

    wallet.enabled = not wallet.enabled
    await db.flush()
    await db.refresh(wallet)
    state = "enabled" if wallet.enabled else "disabled"
    commissions_logger.info(f"IB wallet ID {wallet.id} {state} by admin ID {identity.admin_id}")

    await audit_service.log_activity(
        db,
        identity.admin_id,
        "enable_ib_wallet" if wallet.enabled else "disable_ib_wallet",
        "ib_wallet",
        wallet.id,
        f"IB wallet of user {referrer_id} {state}",
        user_id=referrer_id,
    )
    return wallet


async def list_wallets(db: AsyncSession, identity: AdminIdentity) -> List[IbCbWallet]:
    wallets = await crud_ib_wallet.get_all_wallets(db)
    return identity.filter(wallets, lambda wallet: wallet.user.country)


async def list_wallet_transactions(db: AsyncSession, referrer_id: int, identity: AdminIdentity) -> List[IbWalletTransaction]:
    referrer = await crud_user.get_user(db, referrer_id)
    if referrer is None or not identity.can_see(referrer.country):
        raise NotFound(f"User {referrer_id} not found")
    wallet = await crud_ib_wallet.get_wallet(db, referrer_id, WALLET_TYPE_IB)
    if wallet is None:
        raise NotFound(f"IB wallet for user {referrer_id} not found")
    return await crud_ib_wallet.get_transactions(db, wallet.id)
