from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database.connection import get_db
from core.middleware import get_request_id
from routers.auth import get_current_user, require_role
from schemas.user import UserResponse
from schemas.delivery import (
    DeliveryCreate,
    DeliveryCreatedResponse,
    DeliveryDetailResponse,
    DeliveryResponse,
    TrackingResponse,
    TrackingUpdateResponse,
    TransitionRequest,
    TransitionResponse,
    StatusActionRequest,
)
from models.delivery import DeliveryStatus
from models.user import UserRole
from services.authorization import resolve_actor_relation
from services.delivery import DeliveryService
from services.delivery_state import DeliveryStateMachine, TransitionResult, next_statuses

logger = logging.getLogger(__name__)
router = APIRouter()

def transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        delivery=DeliveryResponse.from_orm(result.delivery),
        previous_status=result.previous_status,
        tracking_update=(
            TrackingUpdateResponse.from_orm(result.tracking_update)
            if result.tracking_update is not None else None
        ),
        notifications_sent=len(result.notifications),
        warnings=result.warnings
    )

def run_transition(
    db: Session,
    delivery_id: str,
    requested_status: DeliveryStatus,
    current_user: UserResponse,
    expected_status: Optional[DeliveryStatus] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    request_id: Optional[str] = None
) -> TransitionResponse:
    result = DeliveryStateMachine(db, request_id=request_id).request_transition(
        delivery_id=delivery_id,
        requested_status=requested_status,
        actor_id=current_user.id,
        actor_role=current_user.role,
        expected_status=expected_status,
        latitude=latitude,
        longitude=longitude
    )
    return transition_response(result)

@router.post("/", response_model=DeliveryCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_delivery(
    delivery_data: DeliveryCreate,
    current_user: UserResponse = Depends(require_role(UserRole.CUSTOMER)),
    db: Session = Depends(get_db)
):
    """Schedule a new delivery."""
    delivery, payment, amount, report = DeliveryService(db).create_delivery(current_user.id, delivery_data)
    if report.warnings:
        logger.warning(f"Delivery {delivery.id} created with {len(report.warnings)} notification warnings")

    return DeliveryCreatedResponse(
        delivery=DeliveryResponse.from_orm(delivery),
        payment_id=payment.id,
        estimated_price=float(amount)
    )

@router.get("/", response_model=List[DeliveryResponse])
def list_deliveries(
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Deliveries owned by (customers) or assigned to (vendors) the current user."""
    deliveries, _ = DeliveryService(db).list_deliveries(
        current_user.id, current_user.role, status_filter, skip, limit
    )
    return [DeliveryResponse.from_orm(d) for d in deliveries]

@router.get("/{delivery_id}", response_model=DeliveryDetailResponse)
def get_delivery(
    delivery_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    delivery = DeliveryService(db).get_visible_delivery(delivery_id, current_user.id, current_user.role)
    relation = resolve_actor_relation(delivery.user_id, delivery.vendor_id, current_user.id, current_user.role)

    return DeliveryDetailResponse(
        delivery=DeliveryResponse.from_orm(delivery),
        available_transitions=next_statuses(DeliveryStatus(delivery.status), relation)
    )

@router.get("/{delivery_id}/tracking", response_model=TrackingResponse)
def get_tracking(
    delivery_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delivery with its tracking history, newest first."""
    delivery, updates = DeliveryService(db).get_tracking(delivery_id, current_user.id, current_user.role)
    return TrackingResponse(
        delivery=DeliveryResponse.from_orm(delivery),
        updates=[TrackingUpdateResponse.from_orm(u) for u in updates]
    )

@router.post("/{delivery_id}/transition", response_model=TransitionResponse)
def request_transition(
    delivery_id: str,
    transition: TransitionRequest,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    """Move a delivery to a new status."""
    return run_transition(
        db,
        delivery_id,
        transition.status,
        current_user,
        expected_status=transition.expected_status,
        latitude=transition.latitude,
        longitude=transition.longitude,
        request_id=request_id
    )

@router.post("/{delivery_id}/cancel", response_model=TransitionResponse)
def cancel_delivery(
    delivery_id: str,
    action: Optional[StatusActionRequest] = None,
    current_user: UserResponse = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    expected_status = action.expected_status if action else None
    return run_transition(
        db, delivery_id, DeliveryStatus.CANCELLED, current_user,
        expected_status=expected_status, request_id=request_id
    )
