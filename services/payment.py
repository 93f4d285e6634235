from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc
from typing import Callable, List, Optional, Tuple
from datetime import datetime
import logging
import random

from core.config import settings
from core.exceptions import BusinessLogicError, DeliveryNotFound, PersistenceFailure, ResourceNotFoundError
from models.delivery import DeliveryStatus
from models.payment import Payment, PaymentMethod, PaymentStatus
from services.delivery_repository import DeliveryRepository
from services.notification_emitter import EmissionReport, NotificationEmitter

logger = logging.getLogger(__name__)

def simulate_gateway(payment: Payment, method: PaymentMethod) -> bool:
    """Stand-in for a payment gateway; succeeds at PAYMENT_SUCCESS_RATE."""
    return random.random() < settings.PAYMENT_SUCCESS_RATE

class PaymentService:
    def __init__(
        self,
        db: Session,
        gateway: Callable[[Payment, PaymentMethod], bool] = simulate_gateway,
        emitter: Optional[NotificationEmitter] = None
    ):
        self.db = db
        self.gateway = gateway
        self.repository = DeliveryRepository(db)
        self.emitter = emitter or NotificationEmitter(self.repository)

    def process_payment(
        self,
        delivery_id: str,
        customer_id: str,
        payment_method: PaymentMethod
    ) -> Tuple[Payment, EmissionReport]:
        """Settle the pending payment of a customer's delivery."""
        delivery = self.repository.get_delivery(delivery_id)
        if delivery is None or delivery.user_id != customer_id:
            raise DeliveryNotFound(delivery_id)

        if delivery.status in (DeliveryStatus.CANCELLED, DeliveryStatus.REJECTED):
            raise BusinessLogicError(
                "Cannot pay for a delivery that will not be fulfilled",
                details={"current_status": DeliveryStatus(delivery.status).value}
            )

        try:
            payment = self.db.query(Payment).filter(
                Payment.delivery_id == delivery_id,
                Payment.status != PaymentStatus.SUCCESSFUL
            ).order_by(desc(Payment.created_at)).first()

            already_paid = self.db.query(Payment).filter(
                Payment.delivery_id == delivery_id,
                Payment.status == PaymentStatus.SUCCESSFUL
            ).count() > 0
        except SQLAlchemyError as e:
            logger.error(f"Error loading payment for delivery {delivery_id}: {str(e)}")
            raise PersistenceFailure("get_payment", str(e))

        if already_paid:
            raise BusinessLogicError("Delivery has already been paid")
        if payment is None:
            raise ResourceNotFoundError("Payment", delivery_id)

        succeeded = self.gateway(payment, payment_method)

        try:
            payment.payment_method = payment_method
            payment.status = PaymentStatus.SUCCESSFUL if succeeded else PaymentStatus.FAILED
            payment.updated_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(payment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recording payment {payment.id}: {str(e)}")
            raise PersistenceFailure("update_payment", str(e))

        logger.info(f"Payment {payment.id} for delivery {delivery_id} {payment.status.value} via {payment_method.value}")

        report = self.emitter.notify_payment(payment)
        return payment, report

    def list_payments(self, customer_id: str) -> List[Payment]:
        try:
            return self.db.query(Payment).filter(
                Payment.user_id == customer_id
            ).order_by(desc(Payment.created_at)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing payments for {customer_id}: {str(e)}")
            raise PersistenceFailure("list_payments", str(e))
