from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from database.connection import get_db
from routers.auth import require_role
from schemas.user import UserResponse
from schemas.payment import PaymentRequest, PaymentResponse
from models.user import UserRole
from services.payment import PaymentService

logger = logging.getLogger(__name__)
router = APIRouter()

customer_only = require_role(UserRole.CUSTOMER)

@router.post("/process", response_model=PaymentResponse)
def process_payment(
    payment_request: PaymentRequest,
    current_user: UserResponse = Depends(customer_only),
    db: Session = Depends(get_db)
):
    """Pay for one of the current customer's deliveries."""
    payment, _ = PaymentService(db).process_payment(
        payment_request.delivery_id,
        current_user.id,
        payment_request.payment_method
    )
    return PaymentResponse.from_orm(payment)

@router.get("/", response_model=List[PaymentResponse])
def list_payments(
    current_user: UserResponse = Depends(customer_only),
    db: Session = Depends(get_db)
):
    return [PaymentResponse.from_orm(p) for p in PaymentService(db).list_payments(current_user.id)]
