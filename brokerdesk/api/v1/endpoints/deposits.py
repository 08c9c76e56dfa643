# brokerdesk/api/v1/endpoints/deposits.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis
from typing import List, Optional
import logging

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_admin_identity, get_current_user
from brokerdesk.crud import deposit as crud_deposit
from brokerdesk.dependencies.redis_client import get_optional_redis_client
from brokerdesk.schemas.deposit import (
    DepositApprovalResponse,
    DepositApprove,
    DepositCreate,
    DepositReject,
    DepositResponse,
)
from brokerdesk.services import deposit_service
from brokerdesk.services.admin_scope import AdminIdentity

logger = logging.getLogger(__name__)

router = APIRouter(tags=["deposits"])


# --- Client ---

@router.post("/deposits", response_model=DepositResponse, status_code=status.HTTP_201_CREATED)
async def create_deposit(
    data: DepositCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deposit = await deposit_service.create_deposit(db, current_user, data)
    await db.commit()
    return deposit


@router.get("/deposits", response_model=List[DepositResponse])
async def list_my_deposits(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await crud_deposit.get_deposits_by_user(db, current_user.id)


# --- Admin ---

@router.get("/admin/deposits", response_model=List[DepositResponse])
async def admin_list_deposits(
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await deposit_service.list_deposits(db, identity, status=status_filter)


@router.patch("/admin/deposits/{deposit_id}/approve", response_model=DepositApprovalResponse)
async def admin_approve_deposit(
    deposit_id: int,
    data: Optional[DepositApprove] = None,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    """
    Credits a Pending deposit to the client's trading account and settles the
    referrer's commission in the same transaction.
    """
    deposit, commission = await deposit_service.approve_deposit(
        db,
        deposit_id,
        identity,
        amount=data.amount if data else None,
        redis_client=redis_client,
    )
    await db.commit()
    logger.info(f"Admin ID {identity.admin_id} approved deposit ID {deposit_id}; commission={commission}")
    response = DepositApprovalResponse.model_validate(deposit)
    response.commission_credited = commission
    return response


@router.patch("/admin/deposits/{deposit_id}/reject", response_model=DepositResponse)
async def admin_reject_deposit(
    deposit_id: int,
    data: DepositReject,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_optional_redis_client),
):
    deposit = await deposit_service.reject_deposit(db, deposit_id, data.reason, identity, redis_client=redis_client)
    await db.commit()
    return deposit
