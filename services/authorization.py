"""
Who may act on a delivery.

Pure functions over identifiers already loaded by the caller. Nothing here
reads the session or the request; routers pass the authenticated user's id
and role explicitly.
"""
from typing import Iterable, Optional
import enum

from models.user import UserRole


class ActorRelation(str, enum.Enum):
    OWNING_CUSTOMER = "owning_customer"
    ASSIGNED_VENDOR = "assigned_vendor"
    ADMIN = "admin"


def resolve_actor_relation(
    delivery_user_id: Optional[str],
    delivery_vendor_id: Optional[str],
    actor_id: Optional[str],
    actor_role: UserRole
) -> Optional[ActorRelation]:
    """Return how the actor relates to the delivery, or None if unrelated."""
    if not actor_id:
        return None

    if actor_role == UserRole.ADMIN:
        return ActorRelation.ADMIN
    if actor_role == UserRole.VENDOR and delivery_vendor_id and actor_id == delivery_vendor_id:
        return ActorRelation.ASSIGNED_VENDOR
    if actor_role == UserRole.CUSTOMER and delivery_user_id and actor_id == delivery_user_id:
        return ActorRelation.OWNING_CUSTOMER
    return None


def can_request_transition(
    delivery_user_id: Optional[str],
    delivery_vendor_id: Optional[str],
    actor_id: Optional[str],
    actor_role: UserRole,
    allowed_relations: Iterable[ActorRelation]
) -> bool:
    relation = resolve_actor_relation(delivery_user_id, delivery_vendor_id, actor_id, actor_role)
    return relation is not None and relation in set(allowed_relations)


def can_view_delivery(
    delivery_user_id: Optional[str],
    delivery_vendor_id: Optional[str],
    actor_id: Optional[str],
    actor_role: UserRole
) -> bool:
    return resolve_actor_relation(delivery_user_id, delivery_vendor_id, actor_id, actor_role) is not None
