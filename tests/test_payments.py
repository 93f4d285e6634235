from decimal import Decimal

import pytest

from core.exceptions import BusinessLogicError, DeliveryNotFound
from models.delivery import DeliveryStatus
from models.notification import Notification
from models.payment import Payment, PaymentMethod, PaymentStatus
from models.user import UserRole
from services.payment import PaymentService


@pytest.fixture
def pending_payment(db_session):
    def _pending_payment(delivery, amount="150.00"):
        payment = Payment(
            delivery_id=delivery.id,
            user_id=delivery.user_id,
            amount=Decimal(amount),
            status=PaymentStatus.PENDING,
        )
        db_session.add(payment)
        db_session.commit()
        return payment

    return _pending_payment


def approve(payment, method):
    return True


def decline(payment, method):
    return False


def test_successful_payment(db_session, customer, make_delivery, pending_payment):
    delivery = make_delivery(customer)
    pending_payment(delivery)

    payment, report = PaymentService(db_session, gateway=approve).process_payment(
        delivery.id, customer.id, PaymentMethod.UPI
    )

    assert payment.status == PaymentStatus.SUCCESSFUL
    assert payment.payment_method == PaymentMethod.UPI
    assert report.notifications[0].message.startswith("Your payment of ₹150.00 for delivery")


def test_failed_payment_can_be_retried(db_session, customer, make_delivery, pending_payment):
    delivery = make_delivery(customer)
    pending_payment(delivery)

    failed, report = PaymentService(db_session, gateway=decline).process_payment(
        delivery.id, customer.id, PaymentMethod.CREDIT_CARD
    )
    assert failed.status == PaymentStatus.FAILED
    assert report.notifications[0].message.endswith("failed. Please try again.")

    retried, _ = PaymentService(db_session, gateway=approve).process_payment(
        delivery.id, customer.id, PaymentMethod.NET_BANKING
    )
    assert retried.id == failed.id
    assert retried.status == PaymentStatus.SUCCESSFUL


def test_cannot_pay_twice(db_session, customer, make_delivery, pending_payment):
    delivery = make_delivery(customer)
    pending_payment(delivery)
    service = PaymentService(db_session, gateway=approve)
    service.process_payment(delivery.id, customer.id, PaymentMethod.COD)

    with pytest.raises(BusinessLogicError):
        service.process_payment(delivery.id, customer.id, PaymentMethod.COD)


def test_cannot_pay_for_cancelled_delivery(db_session, customer, make_delivery, pending_payment):
    delivery = make_delivery(customer, status=DeliveryStatus.CANCELLED)
    pending_payment(delivery)

    with pytest.raises(BusinessLogicError):
        PaymentService(db_session, gateway=approve).process_payment(delivery.id, customer.id, PaymentMethod.UPI)


def test_only_owner_can_pay(db_session, customer, make_user, make_delivery, pending_payment):
    delivery = make_delivery(customer)
    pending_payment(delivery)
    stranger = make_user(UserRole.CUSTOMER, name="Stranger")

    with pytest.raises(DeliveryNotFound):
        PaymentService(db_session, gateway=approve).process_payment(delivery.id, stranger.id, PaymentMethod.UPI)


def test_pay_through_api_after_scheduling(client, db_session, customer, auth_headers, monkeypatch):
    monkeypatch.setattr("services.payment.settings.PAYMENT_SUCCESS_RATE", 1.0)
    headers = auth_headers(customer)
    created = client.post(
        "/api/deliveries/",
        json={
            "pickup_address": "12 MG Road, Bengaluru",
            "drop_address": "48 Park Street, Kolkata",
            "weight_kg": 2.5,
            "package_type": "handle_with_care",
        },
        headers=headers,
    ).json()

    response = client.post(
        "/api/payments/process",
        json={"delivery_id": created["delivery"]["id"], "payment_method": "UPI"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["payment_id"]
    assert body["status"] == "successful"
    assert body["amount"] == 150.0
    assert body["payment_method"] == "UPI"

    listing = client.get("/api/payments/", headers=headers).json()
    assert [p["id"] for p in listing] == [created["payment_id"]]
    assert db_session.query(Notification).filter(Notification.related_type == "payment").count() == 1
