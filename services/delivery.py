from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc
from typing import List, Optional, Tuple
from datetime import datetime
from decimal import Decimal
import logging

from core.exceptions import (
    BusinessLogicError,
    DeliveryNotFound,
    NotAuthorized,
    PersistenceFailure,
    ResourceNotFoundError,
)
from models.delivery import Delivery, DeliveryStatus
from models.payment import Payment, PaymentStatus
from models.tracking import TrackingUpdate
from models.user import UserRole
from models.vendor import Vendor
from schemas.delivery import DeliveryCreate
from services.authorization import can_view_delivery
from services.delivery_repository import DeliveryRepository
from services.notification_emitter import EmissionReport, NotificationEmitter
from services.pricing import estimate_price
from services.tracking import TrackingRecorder

logger = logging.getLogger(__name__)

class DeliveryService:
    """Delivery intake, lookup and vendor assignment.

    Status changes are not made here; see services.delivery_state.
    """

    def __init__(self, db: Session, emitter: Optional[NotificationEmitter] = None):
        self.db = db
        self.repository = DeliveryRepository(db)
        self.emitter = emitter or NotificationEmitter(self.repository)

    def create_delivery(
        self,
        customer_id: str,
        delivery_data: DeliveryCreate
    ) -> Tuple[Delivery, Payment, Decimal, EmissionReport]:
        """Schedule a delivery for a customer along with its pending payment."""
        if delivery_data.vendor_id:
            vendor = self.repository.get_vendor(delivery_data.vendor_id)
            if vendor is None:
                raise ResourceNotFoundError("Vendor", delivery_data.vendor_id)

        amount = estimate_price(delivery_data.weight_kg, delivery_data.package_type)

        try:
            delivery = Delivery(
                user_id=customer_id,
                vendor_id=delivery_data.vendor_id,
                pickup_address=delivery_data.pickup_address,
                drop_address=delivery_data.drop_address,
                weight_kg=Decimal(str(delivery_data.weight_kg)),
                package_type=delivery_data.package_type,
                scheduled_date=delivery_data.scheduled_date,
                status=DeliveryStatus.PENDING,
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow()
            )
            self.db.add(delivery)
            self.db.flush()  # Get delivery ID

            payment = Payment(
                delivery_id=delivery.id,
                user_id=customer_id,
                amount=amount,
                status=PaymentStatus.PENDING
            )
            self.db.add(payment)
            self.db.commit()
            self.db.refresh(delivery)
            self.db.refresh(payment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating delivery for customer {customer_id}: {str(e)}")
            raise PersistenceFailure("create_delivery", str(e))

        logger.info(f"Delivery created: {delivery.id} for customer {customer_id}")

        report = self.emitter.notify_delivery_created(delivery, amount)
        return delivery, payment, amount, report

    def get_visible_delivery(self, delivery_id: str, actor_id: str, actor_role: UserRole) -> Delivery:
        """Load a delivery the actor may see.

        Deliveries that exist but belong to someone else are reported as not
        found.
        """
        delivery = self.repository.get_delivery(delivery_id)
        if delivery is None or not can_view_delivery(delivery.user_id, delivery.vendor_id, actor_id, actor_role):
            raise DeliveryNotFound(delivery_id)
        return delivery

    def get_tracking(self, delivery_id: str, actor_id: str, actor_role: UserRole) -> Tuple[Delivery, List[TrackingUpdate]]:
        delivery = self.get_visible_delivery(delivery_id, actor_id, actor_role)
        updates = TrackingRecorder(self.repository).list_updates(delivery_id)
        return delivery, updates

    def list_deliveries(
        self,
        actor_id: str,
        actor_role: UserRole,
        status_filter: Optional[DeliveryStatus] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[Delivery], int]:
        """Deliveries owned by a customer, assigned to a vendor, or all of them for admins."""
        try:
            query = self.db.query(Delivery)

            if actor_role == UserRole.CUSTOMER:
                query = query.filter(Delivery.user_id == actor_id)
            elif actor_role == UserRole.VENDOR:
                query = query.filter(Delivery.vendor_id == actor_id)

            if status_filter:
                query = query.filter(Delivery.status == status_filter)

            total = query.count()
            deliveries = query.order_by(desc(Delivery.created_at)).offset(skip).limit(limit).all()
            return deliveries, total
        except SQLAlchemyError as e:
            logger.error(f"Error listing deliveries for {actor_role.value} {actor_id}: {str(e)}")
            raise PersistenceFailure("list_deliveries", str(e))

    def assign_vendor(
        self,
        delivery_id: str,
        vendor_id: str,
        actor_role: UserRole
    ) -> Tuple[Delivery, EmissionReport]:
        """Assign (or reassign) a vendor to a pending delivery. Admin only."""
        if actor_role != UserRole.ADMIN:
            raise NotAuthorized()

        delivery = self.repository.get_delivery(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(delivery_id)

        if delivery.status != DeliveryStatus.PENDING:
            raise BusinessLogicError(
                "Vendors can only be assigned while the delivery is pending",
                details={"current_status": DeliveryStatus(delivery.status).value}
            )

        vendor = self.repository.get_vendor(vendor_id)
        if vendor is None:
            raise ResourceNotFoundError("Vendor", vendor_id)

        if delivery.vendor_id == vendor_id:
            raise BusinessLogicError("Vendor is already assigned to this delivery")

        try:
            updated_rows = self.db.query(Delivery).filter(
                Delivery.id == delivery_id,
                Delivery.status == DeliveryStatus.PENDING
            ).update({
                "vendor_id": vendor_id,
                "updated_at": datetime.utcnow()
            }, synchronize_session=False)

            if updated_rows == 0:
                self.db.rollback()
                raise BusinessLogicError("Delivery is no longer pending")

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error assigning vendor {vendor_id} to delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("assign_vendor", str(e))

        delivery = self.repository.get_delivery(delivery_id)
        logger.info(f"Vendor {vendor_id} assigned to delivery {delivery_id}")

        report = self.emitter.notify_vendor_assigned(delivery, vendor)
        return delivery, report

    def list_vendors(self) -> List[Vendor]:
        try:
            return self.db.query(Vendor).order_by(Vendor.company_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing vendors: {str(e)}")
            raise PersistenceFailure("list_vendors", str(e))
