# brokerdesk/services/referral_service.py

"""
Referral lifecycle.

A referred user's referral moves Pending -> Accepted or Pending -> Rejected,
once, by admin decision. Accepted and Rejected are terminal. Users who signed
up without a recognised referral code have no referral at all and can never
acquire one.
"""

import re
from decimal import Decimal
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.config import get_settings
from brokerdesk.core.exceptions import Conflict, InvalidStateTransition, NotFound, ValidationError
from brokerdesk.core.logging_config import referrals_logger
from brokerdesk.core.security import get_password_hash
from brokerdesk.crud import ib_wallet as crud_ib_wallet
from brokerdesk.crud import user as crud_user
from brokerdesk.database.models import (
    User,
    REFERRAL_ACCEPTED,
    REFERRAL_PENDING,
    REFERRAL_REJECTED,
    WALLET_TYPE_IB,
)
from brokerdesk.schemas.user import UserSignup
from brokerdesk.services import audit_service, notification_service
from brokerdesk.services.admin_scope import AdminIdentity
from brokerdesk.services.commission_service import ensure_ib_wallet

settings = get_settings()

REF_QUERY_PATTERN = re.compile(r"[?&]ref=([^&#\s]+)")
BARE_CODE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def extract_referral_code(token: Optional[str]) -> Optional[str]:
    """
    Accepts a bare code (``REFXYZ123``) or a link carrying ``ref=<code>``
    and returns the code, or None when nothing usable is present.
    """
    if not token:
        return None
    token = token.strip()
    match = REF_QUERY_PATTERN.search(token)
    if match:
        return match.group(1)
    if BARE_CODE_PATTERN.fullmatch(token):
        return token
    return None


async def resolve_referrer(db: AsyncSession, token: Optional[str]) -> Optional[User]:
    """Unknown or malformed tokens resolve to no referrer, never to an error."""
    code = extract_referral_code(token)
    if code is None:
        if token:
            referrals_logger.info(f"Ignoring unusable referral token '{token[:64]}'")
        return None
    referrer = await crud_user.get_user_by_referral_code(db, code)
    if referrer is None:
        referrals_logger.info(f"Referral code '{code}' matched no user; signing up without referrer")
    return referrer


def referral_link(user: User) -> str:
    return f"{settings.REFERRAL_LINK_BASE}?ref={user.referral_id}"


async def signup_user(db: AsyncSession, data: UserSignup) -> User:
    email = data.email.lower()
    if await crud_user.get_user_by_email(db, email):
        raise Conflict("A user with this email already exists")

    referrer = await resolve_referrer(db, data.ref)
    user = await crud_user.create_user(
        db,
        email=email,
        hashed_password=get_password_hash(data.password),
        full_name=data.full_name,
        phone=data.phone,
        country=data.country,
        city=data.city,
        address=data.address,
        referred_by_id=referrer.id if referrer else None,
        referral_status=REFERRAL_PENDING if referrer else None,
    )
    if referrer:
        referrals_logger.info(f"User ID {user.id} signed up referred by user ID {referrer.id}; referral Pending")
        await notification_service.notify(
            db,
            referrer.id,
            "New referral",
            f"{user.full_name} signed up with your referral link and is awaiting approval.",
        )
    return user


async def _load_referred_user(db: AsyncSession, user_id: int, identity: AdminIdentity) -> User:
    user = await crud_user.get_user_with_lock(db, user_id)
    if user is None or not identity.can_see(user.country):
        raise NotFound(f"User {user_id} not found")
    return user


async def accept_referral(
    db: AsyncSession,
    user_id: int,
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> User:
    """
    Pending -> Accepted. The referrer's IB wallet is created at the default
    rate if missing, or re-enabled if it had been disabled.
    """
    user = await _load_referred_user(db, user_id, identity)
    if user.referral_status != REFERRAL_PENDING:
        raise InvalidStateTransition("referral", user.referral_status, "accept")

    user.referral_status = REFERRAL_ACCEPTED
    wallet, created = await ensure_ib_wallet(db, user.referred_by_id)
    if not wallet.enabled:
        wallet.enabled = True
        referrals_logger.info(f"Re-enabled IB wallet ID {wallet.id} of referrer ID {user.referred_by_id}")
    await db.flush()
    await db.refresh(user)
    referrals_logger.info(
        f"Referral of user ID {user.id} accepted by admin ID {identity.admin_id}; "
        f"IB wallet ID {wallet.id} {'created' if created else 'ready'} for referrer ID {user.referred_by_id}"
    )

    await audit_service.log_activity(
        db,
        identity.admin_id,
        "accept_referral",
        "user",
        user.id,
        f"Referral by user {user.referred_by_id} accepted",
        user_id=user.id,
    )
    await notification_service.notify(
        db,
        user.referred_by_id,
        "Referral accepted",
        f"Your referral {user.full_name} was approved. You will now earn commission on their deposits.",
        type="success",
        redis_client=redis_client,
    )
    return user


async def reject_referral(
    db: AsyncSession,
    user_id: int,
    reason: Optional[str],
    identity: AdminIdentity,
    redis_client: Optional[Redis] = None,
) -> User:
    """Pending -> Rejected. A non-blank reason is mandatory."""
    if reason is None or not reason.strip():
        raise ValidationError("A rejection reason is required")
    reason = reason.strip()

    user = await _load_referred_user(db, user_id, identity)
    if user.referral_status != REFERRAL_PENDING:
        raise InvalidStateTransition("referral", user.referral_status, "reject")

    user.referral_status = REFERRAL_REJECTED
    user.referral_rejection_reason = reason
    await db.flush()
    await db.refresh(user)
    referrals_logger.info(f"Referral of user ID {user.id} rejected by admin ID {identity.admin_id}: {reason}")

    await audit_service.log_activity(
        db,
        identity.admin_id,
        "reject_referral",
        "user",
        user.id,
        f"Referral by user {user.referred_by_id} rejected: {reason}",
        user_id=user.id,
    )
    await notification_service.notify(
        db,
        user.referred_by_id,
        "Referral rejected",
        f"Your referral {user.full_name} was not approved. Reason: {reason}",
        type="warning",
        redis_client=redis_client,
    )
    return user


async def list_referrals(db: AsyncSession, identity: AdminIdentity, status: Optional[str] = None) -> list[User]:
    referred = await crud_user.get_referred_users(db, referral_status=status)
    return identity.filter(referred, lambda user: user.country)


async def get_ib_stats(db: AsyncSession, user: User) -> dict:
    """Dashboard figures for a referrer."""
    referred = await crud_user.get_referred_users(db, referrer_id=user.id)
    wallet = await crud_ib_wallet.get_wallet(db, user.id, WALLET_TYPE_IB)
    earned_by_source = await crud_ib_wallet.get_commission_by_source(db, wallet.id) if wallet else {}

    zero = Decimal("0.00")
    return {
        "referral_id": user.referral_id,
        "referral_link": referral_link(user),
        "total_referrals": len(referred),
        "accepted_referrals": sum(1 for r in referred if r.referral_status == REFERRAL_ACCEPTED),
        "pending_referrals": sum(1 for r in referred if r.referral_status == REFERRAL_PENDING),
        "rejected_referrals": sum(1 for r in referred if r.referral_status == REFERRAL_REJECTED),
        "wallet_enabled": bool(wallet and wallet.enabled),
        "balance": wallet.balance if wallet else zero,
        "total_commission": wallet.total_commission if wallet else zero,
        "commission_rate": wallet.commission_rate if wallet else settings.DEFAULT_COMMISSION_RATE,
        "referrals": [
            {
                "user_id": r.id,
                "full_name": r.full_name,
                "email": r.email,
                "country": r.country,
                "referral_status": r.referral_status,
                "joined_at": r.created_at,
                "commission_earned": earned_by_source.get(r.id, zero),
            }
            for r in referred
        ],
    }
