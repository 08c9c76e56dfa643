# brokerdesk/services/notification_service.py

import json
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.logging_config import notifications_logger
from brokerdesk.crud import notification as crud_notification

REDIS_USER_NOTIFICATIONS_CHANNEL = "user_notifications"


async def notify(
    db: AsyncSession,
    user_id: int,
    title: str,
    message: str,
    type: str = "info",
    redis_client: Optional[Redis] = None,
) -> None:
    """
    Stores an in-app notification and publishes it for connected clients.
    Fire-and-forget: any failure is logged and swallowed.
    """
    try:
        async with db.begin_nested():
            await crud_notification.create_notification(db, user_id=user_id, title=title, message=message, type=type)
    except Exception as e:
        notifications_logger.warning(f"Failed to store notification for user ID {user_id}: {e}")
        return

    if redis_client is None:
        return
    try:
        payload = json.dumps({"user_id": user_id, "title": title, "message": message, "type": type})
        await redis_client.publish(REDIS_USER_NOTIFICATIONS_CHANNEL, payload)
        notifications_logger.info(f"Published notification '{title}' for user ID {user_id}")
    except Exception as e:
        notifications_logger.warning(f"Failed to publish notification for user ID {user_id}: {e}")
