from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from database.connection import get_db
from routers.auth import get_current_user
from schemas.user import UserResponse
from schemas.feedback import FeedbackCreate, FeedbackResponse
from services.delivery_repository import DeliveryRepository
from services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    feedback: FeedbackCreate,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Send feedback to the CargoMate team."""
    report = NotificationEmitter(DeliveryRepository(db)).notify_feedback(
        sender_id=current_user.id,
        name=feedback.name or current_user.name,
        email=feedback.email or current_user.email,
        feedback_type=feedback.feedback_type.value,
        subject=feedback.subject,
        message=feedback.message
    )
    if report.warnings:
        logger.warning(f"Feedback from {current_user.id} stored with {len(report.warnings)} warnings")

    logger.info(f"Feedback ({feedback.feedback_type.value}) received from user {current_user.id}")
    return FeedbackResponse(
        message="Thank you for your feedback!",
        notifications_sent=len(report.notifications)
    )
