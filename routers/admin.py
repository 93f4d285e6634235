from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database.connection import get_db
from routers.auth import require_role
from core.middleware import get_request_id
from routers.deliveries import run_transition
from services.delivery import DeliveryService
from models.delivery import DeliveryStatus
from models.user import UserRole
from schemas.user import UserResponse, VendorResponse
from schemas.delivery import AssignVendorRequest, DeliveryResponse, StatusActionRequest, TransitionResponse
from core.response import paginated_response

logger = logging.getLogger(__name__)

router = APIRouter()

admin_only = require_role(UserRole.ADMIN)

@router.get("/deliveries")
def list_all_deliveries(
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: UserResponse = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Every delivery on the marketplace, optionally filtered by status."""
    deliveries, total = DeliveryService(db).list_deliveries(
        current_user.id,
        current_user.role,
        status_filter,
        skip=(page - 1) * per_page,
        limit=per_page
    )
    return paginated_response(
        data=[DeliveryResponse.from_orm(d).model_dump(mode="json") for d in deliveries],
        page=page,
        per_page=per_page,
        total_items=total,
        filters={"status": status_filter.value if status_filter else None}
    )

@router.post("/deliveries/{delivery_id}/assign-vendor", response_model=DeliveryResponse)
def assign_vendor(
    delivery_id: str,
    assignment: AssignVendorRequest,
    current_user: UserResponse = Depends(admin_only),
    db: Session = Depends(get_db)
):
    delivery, report = DeliveryService(db).assign_vendor(delivery_id, assignment.vendor_id, current_user.role)
    if report.warnings:
        logger.warning(f"Vendor assigned to {delivery_id} with {len(report.warnings)} notification warnings")
    return DeliveryResponse.from_orm(delivery)

@router.post("/deliveries/{delivery_id}/cancel", response_model=TransitionResponse)
def cancel_delivery(
    delivery_id: str,
    action: Optional[StatusActionRequest] = None,
    current_user: UserResponse = Depends(admin_only),
    db: Session = Depends(get_db),
    request_id: Optional[str] = Depends(get_request_id)
):
    """Administrative override: cancel any delivery that has not finished."""
    return run_transition(
        db, delivery_id, DeliveryStatus.CANCELLED, current_user,
        expected_status=action.expected_status if action else None,
        request_id=request_id
    )

@router.get("/vendors", response_model=List[VendorResponse])
def list_vendors(
    current_user: UserResponse = Depends(admin_only),
    db: Session = Depends(get_db)
):
    return [VendorResponse.from_orm(v) for v in DeliveryService(db).list_vendors()]
