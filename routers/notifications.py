from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from database.connection import get_db
from core.response import success_response
from schemas.user import UserResponse
from schemas.notification import NotificationResponse, UnreadCountResponse
from routers.auth import get_current_user
from services.notification import NotificationService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[NotificationResponse])
def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get notifications for the current user."""
    notifications = NotificationService(db).get_user_notifications(
        user_id=current_user.id,
        role=current_user.role,
        limit=limit,
        offset=offset,
        unread_only=unread_only
    )
    return [NotificationResponse.from_orm(n) for n in notifications]

@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    count = NotificationService(db).get_unread_count(current_user.id, current_user.role)
    return UnreadCountResponse(unread_count=count)

@router.put("/read-all")
def mark_all_notifications_read(
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    updated = NotificationService(db).mark_all_as_read(current_user.id, current_user.role)
    return success_response(
        data={"updated": updated},
        message=f"Marked {updated} notifications as read"
    )

@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a notification as read."""
    notification = NotificationService(db).mark_as_read(notification_id, current_user.id, current_user.role)
    return NotificationResponse.from_orm(notification)
