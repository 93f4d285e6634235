import pytest

from core.exceptions import (
    ConcurrentModification,
    DeliveryNotFound,
    InvalidTransition,
    NotAuthorized,
    PersistenceFailure,
    ValidationError,
)
from models.delivery import DeliveryStatus
from models.notification import Notification
from models.tracking import TrackingUpdate
from models.user import UserRole
from services.authorization import ActorRelation
from services.delivery_repository import DeliveryRepository
from services.delivery_state import (
    LEGAL_TRANSITIONS,
    DeliveryStateMachine,
    allowed_relations,
    next_statuses,
)


class FailingTrackingRepository(DeliveryRepository):
    def insert_tracking_update(self, *args, **kwargs):
        raise PersistenceFailure("insert_tracking_update", "disk full")


class FailingNotificationRepository(DeliveryRepository):
    def insert_notification(self, *args, **kwargs):
        raise PersistenceFailure("insert_notification", "connection reset")


@pytest.fixture
def machine(db_session):
    return DeliveryStateMachine(db_session)


def tracking_rows(db_session, delivery_id):
    return db_session.query(TrackingUpdate).filter(TrackingUpdate.delivery_id == delivery_id).all()


def notification_rows(db_session, delivery_id):
    return db_session.query(Notification).filter(Notification.related_id == delivery_id).all()


def test_vendor_accepts_pending_delivery(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    result = machine.request_transition(delivery.id, "accepted", vendor.id, UserRole.VENDOR)

    assert result.delivery.status == DeliveryStatus.ACCEPTED
    assert result.previous_status == DeliveryStatus.PENDING
    assert result.warnings == []

    updates = tracking_rows(db_session, delivery.id)
    assert len(updates) == 1
    assert updates[0].status_update == "Dispatched"
    assert updates[0].latitude is None and updates[0].longitude is None

    messages = [n.message for n in result.notifications]
    assert messages == [
        "Your delivery from 12 MG Road, Bengaluru to 48 Park Street, Kolkata has been accepted by Swift Cargo."
    ]
    assert result.notifications[0].user_id == customer.id


def test_customer_cannot_skip_to_delivered(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    with pytest.raises(InvalidTransition) as exc_info:
        machine.request_transition(delivery.id, DeliveryStatus.DELIVERED, customer.id, UserRole.CUSTOMER)

    assert exc_info.value.details == {"current_status": "pending", "requested_status": "delivered"}
    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.PENDING
    assert tracking_rows(db_session, delivery.id) == []
    assert notification_rows(db_session, delivery.id) == []


def test_unrelated_vendor_is_not_authorized(db_session, machine, customer, vendor, make_vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.ACCEPTED)
    other_vendor = make_vendor("Rapid Parcels")

    with pytest.raises(NotAuthorized):
        machine.request_transition(delivery.id, DeliveryStatus.IN_TRANSIT, other_vendor.id, UserRole.VENDOR)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.ACCEPTED
    assert tracking_rows(db_session, delivery.id) == []
    assert notification_rows(db_session, delivery.id) == []


def test_vendor_marks_delivered_with_position(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.IN_TRANSIT)

    result = machine.request_transition(
        delivery.id, DeliveryStatus.DELIVERED, vendor.id, UserRole.VENDOR,
        latitude=12.97, longitude=77.59
    )

    assert result.delivery.status == DeliveryStatus.DELIVERED
    assert result.tracking_update.status_update == "Delivered"
    assert result.tracking_update.latitude == pytest.approx(12.97)
    assert result.tracking_update.longitude == pytest.approx(77.59)
    assert [n.message for n in result.notifications] == [
        "Your delivery from 12 MG Road, Bengaluru to 48 Park Street, Kolkata has been updated to delivered."
    ]


def test_delivered_is_terminal(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.DELIVERED)

    with pytest.raises(InvalidTransition):
        machine.request_transition(delivery.id, DeliveryStatus.CANCELLED, customer.id, UserRole.CUSTOMER)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert tracking_rows(db_session, delivery.id) == []


@pytest.mark.parametrize("terminal", [DeliveryStatus.DELIVERED, DeliveryStatus.REJECTED, DeliveryStatus.CANCELLED])
def test_admin_cannot_leave_terminal_states(machine, admin, customer, vendor, make_delivery, terminal):
    delivery = make_delivery(customer, vendor, status=terminal)

    for requested in DeliveryStatus:
        with pytest.raises(InvalidTransition):
            machine.request_transition(delivery.id, requested, admin.id, UserRole.ADMIN)


def test_self_transition_is_rejected(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.ACCEPTED)

    with pytest.raises(InvalidTransition):
        machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)


def test_unknown_delivery(machine, admin):
    with pytest.raises(DeliveryNotFound):
        machine.request_transition("missing-id", DeliveryStatus.CANCELLED, admin.id, UserRole.ADMIN)


def test_customer_cannot_accept_own_delivery(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    with pytest.raises(NotAuthorized):
        machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, customer.id, UserRole.CUSTOMER)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.PENDING


def test_customer_may_only_cancel_while_pending(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.ACCEPTED)

    with pytest.raises(NotAuthorized):
        machine.request_transition(delivery.id, DeliveryStatus.CANCELLED, customer.id, UserRole.CUSTOMER)


def test_customer_cancels_pending_and_vendor_is_told(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    result = machine.request_transition(delivery.id, DeliveryStatus.CANCELLED, customer.id, UserRole.CUSTOMER)

    assert result.delivery.status == DeliveryStatus.CANCELLED
    # No display label for cancelled, the raw status is kept
    assert result.tracking_update.status_update == "cancelled"
    recipients = {n.user_id for n in result.notifications}
    assert recipients == {customer.id, vendor.id}


def test_admin_cancels_in_transit_delivery(machine, admin, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.IN_TRANSIT)

    result = machine.request_transition(delivery.id, DeliveryStatus.CANCELLED, admin.id, UserRole.ADMIN)

    assert result.delivery.status == DeliveryStatus.CANCELLED
    assert result.previous_status == DeliveryStatus.IN_TRANSIT


def test_vendor_rejection_uses_company_name(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    result = machine.request_transition(delivery.id, DeliveryStatus.REJECTED, vendor.id, UserRole.VENDOR)

    assert result.tracking_update.status_update == "rejected"
    assert result.notifications[0].message.endswith("has been rejected by Swift Cargo.")


def test_full_lifecycle_keeps_history(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)
    machine.request_transition(delivery.id, DeliveryStatus.IN_TRANSIT, vendor.id, UserRole.VENDOR)
    machine.request_transition(delivery.id, DeliveryStatus.DELIVERED, vendor.id, UserRole.VENDOR)

    labels = sorted(u.status_update for u in tracking_rows(db_session, delivery.id))
    assert labels == ["Delivered", "Dispatched", "In Transit"]


def test_stale_expected_status_is_a_conflict(db_session, machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor, status=DeliveryStatus.ACCEPTED)

    with pytest.raises(ConcurrentModification) as exc_info:
        machine.request_transition(
            delivery.id, DeliveryStatus.REJECTED, vendor.id, UserRole.VENDOR,
            expected_status=DeliveryStatus.PENDING
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["actual_status"] == "accepted"
    assert tracking_rows(db_session, delivery.id) == []


def test_lost_compare_and_swap_is_a_conflict(db_session, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    class RacingRepository(DeliveryRepository):
        def update_delivery_status(self, delivery_id, expected_status, new_status):
            # Another request cancels the delivery between the read and the write
            super().update_delivery_status(delivery_id, expected_status, DeliveryStatus.CANCELLED)
            return super().update_delivery_status(delivery_id, expected_status, new_status)

    machine = DeliveryStateMachine(db_session, repository=RacingRepository(db_session))

    with pytest.raises(ConcurrentModification):
        machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.CANCELLED
    assert tracking_rows(db_session, delivery.id) == []


def test_tracking_failure_is_reported_as_warning(db_session, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)
    machine = DeliveryStateMachine(db_session, repository=FailingTrackingRepository(db_session))

    result = machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)

    assert result.delivery.status == DeliveryStatus.ACCEPTED
    assert result.tracking_update is None
    assert len(result.warnings) == 1
    assert "insert_tracking_update" in result.warnings[0]
    assert len(result.notifications) == 1


def test_notification_failure_is_reported_as_warning(db_session, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)
    machine = DeliveryStateMachine(db_session, repository=FailingNotificationRepository(db_session))

    result = machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.ACCEPTED
    assert result.tracking_update is not None
    assert result.notifications == []
    assert any(customer.id in w for w in result.warnings)


def test_invalid_status_value(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    with pytest.raises(ValidationError) as exc_info:
        machine.request_transition(delivery.id, "lost", vendor.id, UserRole.VENDOR)

    assert exc_info.value.details["field"] == "requested_status"


def test_invalid_role_value(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    with pytest.raises(ValidationError):
        machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, "courier")


def test_role_strings_are_case_insensitive(machine, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    result = machine.request_transition(delivery.id, "accepted", vendor.id, "VENDOR")

    assert result.delivery.status == DeliveryStatus.ACCEPTED


def test_every_pair_outside_the_table_is_illegal():
    for current in DeliveryStatus:
        for requested in DeliveryStatus:
            if (current, requested) in LEGAL_TRANSITIONS:
                assert allowed_relations(current, requested)
            else:
                assert allowed_relations(current, requested) is None


def test_next_statuses_per_relation():
    assert set(next_statuses(DeliveryStatus.PENDING, ActorRelation.ASSIGNED_VENDOR)) == {
        DeliveryStatus.ACCEPTED, DeliveryStatus.REJECTED
    }
    assert next_statuses(DeliveryStatus.PENDING, ActorRelation.OWNING_CUSTOMER) == [DeliveryStatus.CANCELLED]
    assert next_statuses(DeliveryStatus.IN_TRANSIT, ActorRelation.OWNING_CUSTOMER) == []
    assert next_statuses(DeliveryStatus.DELIVERED, ActorRelation.ADMIN) == []


def test_admin_cancels_pending_delivery(db_session, machine, admin, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    result = machine.request_transition(delivery.id, DeliveryStatus.CANCELLED, admin.id, UserRole.ADMIN)

    assert result.delivery.status == DeliveryStatus.CANCELLED
    assert result.previous_status == DeliveryStatus.PENDING
    assert result.tracking_update.status_update == "cancelled"
    assert {n.user_id for n in result.notifications} == {customer.id, vendor.id}


def test_failed_status_write_has_no_side_effects(db_session, customer, vendor, make_delivery):
    delivery = make_delivery(customer, vendor)

    class BrokenWriteRepository(DeliveryRepository):
        def update_delivery_status(self, delivery_id, expected_status, new_status):
            raise PersistenceFailure("update_delivery_status", "database is locked")

    machine = DeliveryStateMachine(db_session, repository=BrokenWriteRepository(db_session))

    with pytest.raises(PersistenceFailure):
        machine.request_transition(delivery.id, DeliveryStatus.ACCEPTED, vendor.id, UserRole.VENDOR)

    db_session.refresh(delivery)
    assert delivery.status == DeliveryStatus.PENDING
    assert tracking_rows(db_session, delivery.id) == []
    assert notification_rows(db_session, delivery.id) == []


def test_refused_requests_leave_the_delivery_untouched(db_session, machine, admin, customer, vendor, make_delivery):
    actors = {
        ActorRelation.OWNING_CUSTOMER: (customer, UserRole.CUSTOMER),
        ActorRelation.ASSIGNED_VENDOR: (vendor, UserRole.VENDOR),
        ActorRelation.ADMIN: (admin, UserRole.ADMIN),
    }

    for current in DeliveryStatus:
        for requested in DeliveryStatus:
            for relation, (actor, role) in actors.items():
                relations = LEGAL_TRANSITIONS.get((current, requested))
                if relations is not None and relation in relations:
                    continue

                delivery = make_delivery(customer, vendor, status=current)
                expected_error = InvalidTransition if relations is None else NotAuthorized

                with pytest.raises(expected_error):
                    machine.request_transition(delivery.id, requested, actor.id, role)

                db_session.refresh(delivery)
                assert delivery.status == current
                assert tracking_rows(db_session, delivery.id) == []
                assert notification_rows(db_session, delivery.id) == []
