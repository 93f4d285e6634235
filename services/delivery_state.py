"""
Delivery lifecycle state machine.

Every status change goes through ``DeliveryStateMachine.request_transition``.
Checks run in a fixed order so that failures before the write leave the
store untouched:

1. the delivery exists
2. the actor is related to it (owning customer, assigned vendor or admin)
3. the caller's last-known status still matches, if one was given
4. the (current, requested) pair is a legal edge
5. the actor's relation is allowed on that edge

The write is a compare-and-swap on the status read in step 1. Tracking and
notification side effects follow the committed write and are degraded to
warnings when they fail.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
import logging

from sqlalchemy.orm import Session

from core.exceptions import (
    ConcurrentModification,
    DeliveryNotFound,
    InvalidTransition,
    NotAuthorized,
    PersistenceFailure,
    ValidationError,
)
from models.delivery import Delivery, DeliveryStatus, TERMINAL_STATUSES
from models.notification import Notification
from models.tracking import TrackingUpdate
from models.user import UserRole
from services.authorization import ActorRelation, resolve_actor_relation
from services.delivery_repository import DeliveryRepository
from services.notification_emitter import NotificationEmitter
from services.tracking import TrackingRecorder

logger = logging.getLogger(__name__)

_VENDOR = frozenset({ActorRelation.ASSIGNED_VENDOR})
_ADMIN = frozenset({ActorRelation.ADMIN})
_CUSTOMER_OR_ADMIN = frozenset({ActorRelation.OWNING_CUSTOMER, ActorRelation.ADMIN})

LEGAL_TRANSITIONS: Dict[Tuple[DeliveryStatus, DeliveryStatus], FrozenSet[ActorRelation]] = {
    (DeliveryStatus.PENDING, DeliveryStatus.ACCEPTED): _VENDOR,
    (DeliveryStatus.PENDING, DeliveryStatus.REJECTED): _VENDOR,
    (DeliveryStatus.PENDING, DeliveryStatus.CANCELLED): _CUSTOMER_OR_ADMIN,
    (DeliveryStatus.ACCEPTED, DeliveryStatus.IN_TRANSIT): _VENDOR,
    (DeliveryStatus.ACCEPTED, DeliveryStatus.CANCELLED): _ADMIN,
    (DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED): _VENDOR,
    (DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED): _ADMIN,
}


def allowed_relations(
    current_status: DeliveryStatus,
    requested_status: DeliveryStatus
) -> Optional[FrozenSet[ActorRelation]]:
    """Relations allowed on an edge, or None when the edge does not exist."""
    if current_status in TERMINAL_STATUSES:
        return None
    return LEGAL_TRANSITIONS.get((current_status, requested_status))


def next_statuses(current_status: DeliveryStatus, relation: ActorRelation) -> List[DeliveryStatus]:
    """Statuses the given relation may move a delivery to from ``current_status``."""
    return [
        to_status for (from_status, to_status), relations in LEGAL_TRANSITIONS.items()
        if from_status == current_status and relation in relations
    ]


@dataclass
class TransitionResult:
    delivery: Delivery
    previous_status: DeliveryStatus
    tracking_update: Optional[TrackingUpdate] = None
    notifications: List[Notification] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _coerce_status(value: Union[DeliveryStatus, str], field_name: str) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        valid = [s.value for s in DeliveryStatus]
        raise ValidationError(f"Invalid delivery status '{value}'. Must be one of: {valid}", field=field_name)


def _coerce_role(value: Union[UserRole, str]) -> UserRole:
    try:
        return UserRole(value.lower() if isinstance(value, str) else value)
    except ValueError:
        valid = [r.value for r in UserRole]
        raise ValidationError(f"Invalid actor role '{value}'. Must be one of: {valid}", field="actor_role")


class DeliveryStateMachine:
    def __init__(
        self,
        db: Session,
        repository: Optional[DeliveryRepository] = None,
        recorder: Optional[TrackingRecorder] = None,
        emitter: Optional[NotificationEmitter] = None,
        request_id: Optional[str] = None
    ):
        self.repository = repository or DeliveryRepository(db)
        self.recorder = recorder or TrackingRecorder(self.repository)
        self.emitter = emitter or NotificationEmitter(self.repository)
        self.log_prefix = f"[{request_id}] " if request_id else ""

    def request_transition(
        self,
        delivery_id: str,
        requested_status: Union[DeliveryStatus, str],
        actor_id: str,
        actor_role: Union[UserRole, str],
        expected_status: Optional[Union[DeliveryStatus, str]] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None
    ) -> TransitionResult:
        requested = _coerce_status(requested_status, "requested_status")
        role = _coerce_role(actor_role)
        expected = _coerce_status(expected_status, "expected_status") if expected_status is not None else None

        delivery = self.repository.get_delivery(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(delivery_id)

        relation = resolve_actor_relation(delivery.user_id, delivery.vendor_id, actor_id, role)
        if relation is None:
            logger.warning(f"{self.log_prefix}Actor {actor_id} ({role.value}) is not related to delivery {delivery_id}")
            raise NotAuthorized()

        current = DeliveryStatus(delivery.status)
        if expected is not None and expected != current:
            raise ConcurrentModification(delivery_id, expected.value, current.value)

        relations = allowed_relations(current, requested)
        if relations is None:
            logger.info(f"{self.log_prefix}Rejected transition {current.value} -> {requested.value} on delivery {delivery_id}")
            raise InvalidTransition(current.value, requested.value)

        if relation not in relations:
            logger.warning(
                f"{self.log_prefix}Actor {actor_id} as {relation.value} may not move delivery {delivery_id} "
                f"from {current.value} to {requested.value}"
            )
            raise NotAuthorized()

        updated = self.repository.update_delivery_status(delivery_id, current, requested)
        if updated is None:
            raise ConcurrentModification(delivery_id, current.value)

        logger.info(
            f"{self.log_prefix}Delivery {delivery_id} moved {current.value} -> {requested.value} "
            f"by {relation.value} {actor_id}"
        )
        result = TransitionResult(delivery=updated, previous_status=current)

        try:
            result.tracking_update = self.recorder.record(delivery_id, requested, latitude, longitude)
        except PersistenceFailure as e:
            logger.warning(f"{self.log_prefix}Delivery {delivery_id} transitioned but tracking was not recorded: {e.message}")
            result.warnings.append(e.message)

        report = self.emitter.notify_transition(updated, current)
        result.notifications = report.notifications
        result.warnings.extend(report.warnings)

        return result
