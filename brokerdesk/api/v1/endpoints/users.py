# brokerdesk/api/v1/endpoints/users.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from brokerdesk.database.session import get_db
from brokerdesk.core.security import get_admin_identity, require_super_admin
from brokerdesk.schemas.user import UserEnabledResponse, UserResponse
from brokerdesk.services import account_service
from brokerdesk.schemas.trading_account import FundAdjustment, FundAdjustmentResponse
from brokerdesk.services.admin_scope import AdminIdentity, SuperAdmin

router = APIRouter(prefix="/admin/users", tags=["admin users"])


@router.get("", response_model=List[UserResponse])
async def admin_list_users(
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.list_users(db, identity)


@router.get("/{user_id}", response_model=UserResponse)
async def admin_get_user(
    user_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_scoped_user(db, user_id, identity)


@router.patch("/{user_id}/toggle", response_model=UserEnabledResponse)
async def admin_toggle_user(
    user_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await account_service.toggle_user(db, user_id, identity)
    await db.commit()
    return UserEnabledResponse(id=user.id, enabled=user.enabled)


@router.post("/{user_id}/add-funds", response_model=FundAdjustmentResponse)
async def admin_add_funds(
    user_id: int,
    data: FundAdjustment,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.add_funds(db, user_id, data, actor)
    await db.commit()
    return FundAdjustmentResponse(message="Funds added successfully", account_id=account.id, new_balance=account.balance)


@router.post("/{user_id}/remove-funds", response_model=FundAdjustmentResponse)
async def admin_remove_funds(
    user_id: int,
    data: FundAdjustment,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.remove_funds(db, user_id, data, actor)
    await db.commit()
    return FundAdjustmentResponse(message="Funds removed successfully", account_id=account.id, new_balance=account.balance)
