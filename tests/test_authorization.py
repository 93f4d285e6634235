from models.user import UserRole
from services.authorization import (
    ActorRelation,
    can_request_transition,
    can_view_delivery,
    resolve_actor_relation,
)

OWNER = "user-1"
VENDOR = "vendor-1"


def test_owner_resolves_as_owning_customer():
    assert resolve_actor_relation(OWNER, VENDOR, OWNER, UserRole.CUSTOMER) == ActorRelation.OWNING_CUSTOMER


def test_assigned_vendor_resolves_as_assigned_vendor():
    assert resolve_actor_relation(OWNER, VENDOR, VENDOR, UserRole.VENDOR) == ActorRelation.ASSIGNED_VENDOR


def test_admin_is_related_to_every_delivery():
    assert resolve_actor_relation(OWNER, None, "admin-9", UserRole.ADMIN) == ActorRelation.ADMIN


def test_other_vendor_is_unrelated():
    assert resolve_actor_relation(OWNER, VENDOR, "vendor-2", UserRole.VENDOR) is None


def test_role_must_match_the_identity():
    # The owner's id presented with a vendor role does not make them the vendor
    assert resolve_actor_relation(OWNER, VENDOR, OWNER, UserRole.VENDOR) is None
    assert resolve_actor_relation(OWNER, VENDOR, VENDOR, UserRole.CUSTOMER) is None


def test_unassigned_delivery_has_no_vendor_actor():
    assert resolve_actor_relation(OWNER, None, VENDOR, UserRole.VENDOR) is None


def test_missing_actor_id_is_unrelated():
    assert resolve_actor_relation(OWNER, VENDOR, None, UserRole.ADMIN) is None


def test_can_request_transition_checks_allowed_relations():
    vendor_only = {ActorRelation.ASSIGNED_VENDOR}
    assert can_request_transition(OWNER, VENDOR, VENDOR, UserRole.VENDOR, vendor_only)
    assert not can_request_transition(OWNER, VENDOR, OWNER, UserRole.CUSTOMER, vendor_only)
    assert not can_request_transition(OWNER, VENDOR, "admin-9", UserRole.ADMIN, vendor_only)


def test_can_view_delivery():
    assert can_view_delivery(OWNER, VENDOR, OWNER, UserRole.CUSTOMER)
    assert can_view_delivery(OWNER, VENDOR, "admin-9", UserRole.ADMIN)
    assert not can_view_delivery(OWNER, VENDOR, "user-2", UserRole.CUSTOMER)
