# brokerdesk/schemas/notification.py

from pydantic import BaseModel, ConfigDict
from typing import Optional
import datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    message: str
    type: str
    read: bool
    created_at: Optional[datetime.datetime] = None
