from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc
from typing import List, Optional
from datetime import datetime
import logging

from core.exceptions import PersistenceFailure
from models.delivery import Delivery, DeliveryStatus
from models.tracking import TrackingUpdate
from models.notification import Notification, NotificationStatus
from models.vendor import Vendor
from models.user import User, UserRole

logger = logging.getLogger(__name__)

class DeliveryRepository:
    """Store calls used by the delivery lifecycle.

    Every method is a single remote round trip from the caller's point of
    view: it either commits or rolls back and raises PersistenceFailure.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_delivery(self, delivery_id: str) -> Optional[Delivery]:
        try:
            return self.db.query(Delivery).filter(Delivery.id == delivery_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("get_delivery", str(e))

    def update_delivery_status(
        self,
        delivery_id: str,
        expected_status: DeliveryStatus,
        new_status: DeliveryStatus
    ) -> Optional[Delivery]:
        """Compare-and-swap the status.

        Returns the refreshed delivery, or None when the stored status no
        longer equals ``expected_status``.
        """
        try:
            updated_rows = self.db.query(Delivery).filter(
                Delivery.id == delivery_id,
                Delivery.status == expected_status
            ).update({
                "status": new_status,
                "updated_at": datetime.utcnow()
            }, synchronize_session=False)

            if updated_rows == 0:
                self.db.rollback()
                return None

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating status of delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("update_delivery_status", str(e))

        delivery = self.get_delivery(delivery_id)
        if delivery is not None:
            self.db.refresh(delivery)
        return delivery

    def insert_tracking_update(
        self,
        delivery_id: str,
        status_update: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None
    ) -> TrackingUpdate:
        try:
            entry = TrackingUpdate(
                delivery_id=delivery_id,
                status_update=status_update,
                latitude=latitude,
                longitude=longitude,
                updated_at=datetime.utcnow()
            )
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
            return entry
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording tracking update for delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("insert_tracking_update", str(e))

    def list_tracking_updates(self, delivery_id: str) -> List[TrackingUpdate]:
        try:
            return self.db.query(TrackingUpdate).filter(
                TrackingUpdate.delivery_id == delivery_id
            ).order_by(desc(TrackingUpdate.updated_at)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing tracking updates for delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("list_tracking_updates", str(e))

    def insert_notification(
        self,
        user_id: Optional[str],
        message: str,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None
    ) -> Notification:
        try:
            notification = Notification(
                user_id=user_id,
                message=message,
                status=NotificationStatus.UNREAD,
                related_id=related_id,
                related_type=related_type,
                created_at=datetime.utcnow()
            )
            self.db.add(notification)
            self.db.commit()
            self.db.refresh(notification)
            return notification
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating notification for {user_id or 'admins'}: {str(e)}")
            raise PersistenceFailure("insert_notification", str(e))

    def get_vendor(self, vendor_id: str) -> Optional[Vendor]:
        try:
            return self.db.query(Vendor).filter(Vendor.id == vendor_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading vendor {vendor_id}: {str(e)}")
            raise PersistenceFailure("get_vendor", str(e))

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading user {user_id}: {str(e)}")
            raise PersistenceFailure("get_user", str(e))

    def list_admins(self) -> List[User]:
        try:
            return self.db.query(User).filter(
                User.role == UserRole.ADMIN,
                User.is_active == True
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing admins: {str(e)}")
            raise PersistenceFailure("list_admins", str(e))
