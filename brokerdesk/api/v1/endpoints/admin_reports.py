# brokerdesk/api/v1/endpoints/admin_reports.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from brokerdesk.database.session import get_db
from brokerdesk.core.security import get_admin_identity
from brokerdesk.schemas.activity_log import ActivityLogResponse
from brokerdesk.schemas.stats import AdminStats
from brokerdesk.services import audit_service, stats_service
from brokerdesk.services.admin_scope import AdminIdentity

router = APIRouter(prefix="/admin", tags=["admin reports"])


@router.get("/activity-logs", response_model=List[ActivityLogResponse])
async def admin_activity_logs(
    limit: int = Query(200, ge=1, le=1000),
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    """Newest first. Super admins see every entry, other admins their own."""
    return await audit_service.list_activity(db, identity, limit=limit)


@router.get("/stats", response_model=AdminStats)
async def admin_dashboard_stats(
    identity: AdminIdentity = Depends(get_admin_identity),
    db: AsyncSession = Depends(get_db),
):
    return await stats_service.admin_stats(db, identity)
