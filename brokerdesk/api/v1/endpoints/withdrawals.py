# brokerdesk/api/v1/endpoints/withdrawals.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from typing import List, Optional

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_admin_identity, get_current_user
from brokerdesk.crud import withdrawal as crud_withdrawal
from brokerdesk.dependencies.redis_client import get_optional_redis_client
from brokerdesk.schemas.withdrawal import WithdrawalCreate, WithdrawalReject, WithdrawalResponse
from brokerdesk.services import withdrawal_service
from brokerdesk.services.admin_scope import AdminIdentity

router = APIRouter(tags=["withdrawals"])


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def request_withdrawal(
    data: WithdrawalCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    withdrawal = await withdrawal_service.request_withdrawal(db, current_user, data)
    await db.commit()
    return withdrawal


@router.get("/withdrawals", response_model=List[WithdrawalResponse])
async def list_my_withdrawals(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await crud_withdrawal.get_withdrawals_by_user(db, current_user.id)


@router.get("/admin/withdrawals", response_model=List[WithdrawalResponse])
async def admin_list_withdrawals(
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await withdrawal_service.list_withdrawals(db, identity, status=status_filter)


@router.patch("/admin/withdrawals/{withdrawal_id}/approve", response_model=WithdrawalResponse)
async def admin_approve_withdrawal(
    withdrawal_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    withdrawal = await withdrawal_service.approve_withdrawal(db, withdrawal_id, identity, redis_client=redis_client)
    await db.commit()
    return withdrawal


@router.patch("/admin/withdrawals/{withdrawal_id}/reject", response_model=WithdrawalResponse)
async def admin_reject_withdrawal(
    withdrawal_id: int,
    data: WithdrawalReject,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    withdrawal = await withdrawal_service.reject_withdrawal(db, withdrawal_id, data.reason, identity, redis_client=redis_client)
    await db.commit()
    return withdrawal
