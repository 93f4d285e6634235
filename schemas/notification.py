from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from models.notification import NotificationStatus

class NotificationResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    message: str
    status: NotificationStatus
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UnreadCountResponse(BaseModel):
    unread_count: int
