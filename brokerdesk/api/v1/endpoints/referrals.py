# brokerdesk/api/v1/endpoints/referrals.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from typing import List, Literal, Optional
import logging

from brokerdesk.database.session import get_db
from brokerdesk.core.security import get_admin_identity
from brokerdesk.dependencies.redis_client import get_optional_redis_client
from brokerdesk.database.models import User
from brokerdesk.schemas.user import ReferralRejectRequest, ReferralResponse, ReferrerSummary
from brokerdesk.services import referral_service
from brokerdesk.services.admin_scope import AdminIdentity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/referrals", tags=["referrals"])


@router.get("", response_model=List[ReferralResponse])
async def admin_list_referrals(
    status_filter: Optional[Literal["Pending", "Accepted", "Rejected"]] = Query(None, alias="status"),
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    """Referred clients with their referrer, limited to the admin's countries."""
    return await referral_service.list_referrals(db, identity, status=status_filter)


@router.patch("/{user_id}/accept", response_model=ReferralResponse)
async def admin_accept_referral(
    user_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    """
    Approves a Pending referral and enables commission for the referrer by
    creating (or re-enabling) their IB wallet.
    """
    user = await referral_service.accept_referral(db, user_id, identity, redis_client=redis_client)
    await db.commit()
    logger.info(f"Admin ID {identity.admin_id} accepted referral of user ID {user_id}")
    return await _with_referrer(db, user)


@router.patch("/{user_id}/reject", response_model=ReferralResponse)
async def admin_reject_referral(
    user_id: int,
    data: ReferralRejectRequest,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    user = await referral_service.reject_referral(db, user_id, data.reason, identity, redis_client=redis_client)
    await db.commit()
    logger.info(f"Admin ID {identity.admin_id} rejected referral of user ID {user_id}")
    return await _with_referrer(db, user)


async def _with_referrer(db: AsyncSession, user: User) -> ReferralResponse:
    referrer = await db.get(User, user.referred_by_id) if user.referred_by_id else None
    return ReferralResponse(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        country=user.country,
        referral_status=user.referral_status,
        referral_rejection_reason=user.referral_rejection_reason,
        created_at=user.created_at,
        referrer=ReferrerSummary.model_validate(referrer) if referrer else None,
    )
