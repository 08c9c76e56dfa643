# brokerdesk/api/v1/endpoints/ib_wallets.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from typing import List, Optional

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_admin_identity, get_current_user, require_super_admin
from brokerdesk.dependencies.redis_client import get_optional_redis_client
from brokerdesk.schemas.ib_wallet import (
    CommissionRateUpdate,
    IbStatsResponse,
    IbWalletResponse,
    IbWalletWithOwner,
    PayoutRequest,
    WalletTransactionResponse,
)
from brokerdesk.services import commission_service, referral_service
from brokerdesk.services.admin_scope import AdminIdentity, SuperAdmin

router = APIRouter(tags=["ib wallets"])


# --- Client ---

@router.get("/ib/stats", response_model=IbStatsResponse)
async def read_ib_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Referral counts, wallet figures and per-referral commission for the signed-in client."""
    return await referral_service.get_ib_stats(db, current_user)


# --- Admin ---

@router.get("/admin/ib-cb-wallets", response_model=List[IbWalletWithOwner])
async def admin_list_wallets(
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await commission_service.list_wallets(db, identity)


@router.get("/admin/ib-cb-wallets/{referrer_id}/transactions", response_model=List[WalletTransactionResponse])
async def admin_list_wallet_transactions(
    referrer_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await commission_service.list_wallet_transactions(db, referrer_id, identity)


@router.patch("/admin/ib-cb-wallets/{referrer_id}/rate", response_model=IbWalletResponse)
async def admin_update_commission_rate(
    referrer_id: int,
    data: CommissionRateUpdate,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    wallet = await commission_service.update_commission_rate(db, referrer_id, data.rate, actor)
    await db.commit()
    return wallet


@router.post("/admin/ib-cb-wallets/{referrer_id}/payout", response_model=IbWalletResponse)
async def admin_payout(
    referrer_id: int,
    data: PayoutRequest,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    """Pays out of the wallet balance; total commission is not reduced."""
    wallet = await commission_service.payout(db, referrer_id, data.amount, data.notes, actor, redis_client=redis_client)
    await db.commit()
    return wallet


@router.patch("/admin/ib-cb-wallets/{referrer_id}/toggle", response_model=IbWalletResponse)
async def admin_toggle_wallet(
    referrer_id: int,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    wallet = await commission_service.toggle_wallet(db, referrer_id, actor)
    await db.commit()
    return wallet
