# brokerdesk/api/v1/endpoints/trading_accounts.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_admin_identity, get_current_user
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.schemas.trading_account import TradingAccountCreate, TradingAccountResponse, TradingAccountUpdate
from brokerdesk.services import account_service
from brokerdesk.services.admin_scope import AdminIdentity

router = APIRouter(tags=["trading accounts"])


@router.post("/trading-accounts", response_model=TradingAccountResponse, status_code=status.HTTP_201_CREATED)
async def open_trading_account(
    data: TradingAccountCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.open_trading_account(db, current_user, data)
    await db.commit()
    return account


@router.get("/trading-accounts", response_model=List[TradingAccountResponse])
async def list_my_trading_accounts(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await crud_trading_account.get_accounts_by_user(db, current_user.id)


@router.patch("/trading-accounts/{account_id}", response_model=TradingAccountResponse)
async def update_my_trading_account(
    account_id: int,
    data: TradingAccountUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Changes the leverage of one of the client's own accounts."""
    account = await account_service.update_trading_account(db, current_user, account_id, data)
    await db.commit()
    return account


@router.get("/admin/trading-accounts", response_model=List[TradingAccountResponse])
async def admin_list_trading_accounts(
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.list_trading_accounts(db, identity)


@router.patch("/admin/trading-accounts/{account_id}/toggle", response_model=TradingAccountResponse)
async def admin_toggle_trading_account(
    account_id: int,
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    account = await account_service.toggle_trading_account(db, account_id, identity)
    await db.commit()
    return account
