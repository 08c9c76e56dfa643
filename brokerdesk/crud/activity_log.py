# brokerdesk/crud/activity_log.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from brokerdesk.database.models import ActivityLog


async def create_activity_log(db: AsyncSession, **fields) -> ActivityLog:
    entry = ActivityLog(**fields)
    db.add(entry)
    await db.flush()
    return entry


async def get_activity_logs(db: AsyncSession, admin_id: Optional[int] = None, limit: int = 200) -> List[ActivityLog]:
    """Newest first; restricted to one admin when ``admin_id`` is given."""
    query = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit)
    if admin_id is not None:
        query = query.filter(ActivityLog.admin_id == admin_id)
    result = await db.execute(query)
    return list(result.scalars().all())
