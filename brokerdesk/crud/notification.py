# brokerdesk/crud/notification.py

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from brokerdesk.database.models import Notification


async def create_notification(db: AsyncSession, *, user_id: int, title: str, message: str, type: str) -> Notification:
    notification = Notification(user_id=user_id, title=title, message=message, type=type)
    db.add(notification)
    await db.flush()
    return notification


async def get_notification(db: AsyncSession, notification_id: int) -> Optional[Notification]:
    return await db.get(Notification, notification_id)


async def get_notifications_by_user(db: AsyncSession, user_id: int, unread_only: bool = False) -> List[Notification]:
    query = (
        select(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    result = await db.execute(query)
    return list(result.scalars().all())
