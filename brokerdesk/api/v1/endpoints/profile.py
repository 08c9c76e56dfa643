# brokerdesk/api/v1/endpoints/profile.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.security import get_current_user
from brokerdesk.schemas.stats import ClientDashboardStats
from brokerdesk.schemas.user import UserProfileUpdate, UserResponse
from brokerdesk.services import account_service, stats_service

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=UserResponse)
async def read_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await account_service.update_profile(db, current_user, data)
    await db.commit()
    return user


@router.get("/dashboard/stats", response_model=ClientDashboardStats)
async def read_dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Balances per currency and counts of the client's accounts, deposits and withdrawals."""
    return await stats_service.client_stats(db, current_user)
