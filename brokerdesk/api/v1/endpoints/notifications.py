# brokerdesk/api/v1/endpoints/notifications.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from brokerdesk.database.session import get_db
from brokerdesk.database.models import User
from brokerdesk.core.exceptions import NotFound
from brokerdesk.core.security import get_current_user
from brokerdesk.crud import notification as crud_notification
from brokerdesk.schemas.notification import NotificationResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await crud_notification.get_notifications_by_user(db, current_user.id, unread_only=unread_only)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await crud_notification.get_notification(db, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise NotFound(f"Notification {notification_id} not found")
    notification.read = True
    await db.commit()
    return notification
