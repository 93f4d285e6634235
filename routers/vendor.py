from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database.connection import get_db
from routers.auth import require_role
from core.middleware import get_request_id
from routers.deliveries import run_transition
from schemas.user import UserResponse
from schemas.delivery import DeliveryResponse, StatusActionRequest, TransitionRequest, TransitionResponse
from models.delivery import DeliveryStatus
from models.user import UserRole
from services.delivery import DeliveryService

logger = logging.getLogger(__name__)
router = APIRouter()

vendor_only = require_role(UserRole.VENDOR)

@router.get("/deliveries", response_model=List[DeliveryResponse])
def assigned_deliveries(
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    current_user: UserResponse = Depends(vendor_only),
    db: Session = Depends(get_db)
):
    """Deliveries assigned to the current vendor."""
    deliveries, _ = DeliveryService(db).list_deliveries(current_user.id, current_user.role, status_filter)
    return [DeliveryResponse.from_orm(d) for d in deliveries]

@router.post("/deliveries/{delivery_id}/accept", response_model=TransitionResponse)
def accept_delivery(
    delivery_id: str,
    action: Optional[StatusActionRequest] = None,
    current_user: UserResponse = Depends(vendor_only),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    return run_transition(
        db, delivery_id, DeliveryStatus.ACCEPTED, current_user,
        expected_status=action.expected_status if action else None,
        request_id=request_id
    )

@router.post("/deliveries/{delivery_id}/reject", response_model=TransitionResponse)
def reject_delivery(
    delivery_id: str,
    action: Optional[StatusActionRequest] = None,
    current_user: UserResponse = Depends(vendor_only),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    return run_transition(
        db, delivery_id, DeliveryStatus.REJECTED, current_user,
        expected_status=action.expected_status if action else None,
        request_id=request_id
    )

@router.post("/deliveries/{delivery_id}/position", response_model=TransitionResponse)
def report_progress(
    delivery_id: str,
    update: TransitionRequest,
    current_user: UserResponse = Depends(vendor_only),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    """Advance a delivery (in transit / delivered) with the vendor's current position."""
    return run_transition(
        db,
        delivery_id,
        update.status,
        current_user,
        expected_status=update.expected_status,
        latitude=update.latitude,
        longitude=update.longitude,
        request_id=request_id
    )
