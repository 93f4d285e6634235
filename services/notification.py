from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import or_, and_, desc
from typing import List
from datetime import datetime
import logging

from core.exceptions import PersistenceFailure, ResourceNotFoundError
from models.notification import Notification, NotificationStatus
from models.user import UserRole

logger = logging.getLogger(__name__)

class NotificationService:
    """Read side of notifications: listing and marking as read.

    Records are only ever created by the NotificationEmitter.
    """

    def __init__(self, db: Session):
        self.db = db

    def _visible_to(self, user_id: str, role: UserRole):
        if role == UserRole.ADMIN:
            return or_(Notification.user_id == user_id, Notification.user_id.is_(None))
        return Notification.user_id == user_id

    def get_user_notifications(
        self,
        user_id: str,
        role: UserRole,
        limit: int = 20,
        offset: int = 0,
        unread_only: bool = False
    ) -> List[Notification]:
        """Get notifications for a user, newest first."""
        try:
            query = self.db.query(Notification).filter(self._visible_to(user_id, role))

            if unread_only:
                query = query.filter(Notification.status == NotificationStatus.UNREAD)

            return query.order_by(desc(Notification.created_at)).offset(offset).limit(limit).all()

        except SQLAlchemyError as e:
            logger.error(f"Error getting notifications for user {user_id}: {str(e)}")
            raise PersistenceFailure("get_user_notifications", str(e))

    def get_unread_count(self, user_id: str, role: UserRole) -> int:
        try:
            return self.db.query(Notification).filter(
                self._visible_to(user_id, role),
                Notification.status == NotificationStatus.UNREAD
            ).count()
        except SQLAlchemyError as e:
            logger.error(f"Error getting unread count for user {user_id}: {str(e)}")
            raise PersistenceFailure("get_unread_count", str(e))

    def mark_as_read(self, notification_id: str, user_id: str, role: UserRole) -> Notification:
        """Mark a notification as read. Only its owner (or an admin, for broadcasts) may."""
        try:
            notification = self.db.query(Notification).filter(
                Notification.id == notification_id,
                self._visible_to(user_id, role)
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading notification {notification_id}: {str(e)}")
            raise PersistenceFailure("get_notification", str(e))

        if not notification:
            raise ResourceNotFoundError("Notification", notification_id)

        if notification.status == NotificationStatus.READ:
            return notification

        try:
            notification.status = NotificationStatus.READ
            notification.read_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(notification)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error marking notification {notification_id} as read: {str(e)}")
            raise PersistenceFailure("mark_as_read", str(e))

        logger.info(f"Marked notification {notification_id} as read")
        return notification

    def mark_all_as_read(self, user_id: str, role: UserRole) -> int:
        """Mark all unread notifications as read for a user."""
        try:
            updated_count = self.db.query(Notification).filter(
                and_(
                    self._visible_to(user_id, role),
                    Notification.status == NotificationStatus.UNREAD
                )
            ).update({
                "status": NotificationStatus.READ,
                "read_at": datetime.utcnow()
            }, synchronize_session=False)

            self.db.commit()
            logger.info(f"Marked {updated_count} notifications as read for user {user_id}")
            return updated_count

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error marking all notifications as read: {str(e)}")
            raise PersistenceFailure("mark_all_as_read", str(e))
