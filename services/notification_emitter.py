from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional
import logging

from core.config import settings
from core.exceptions import NotificationEmissionFailure, PersistenceFailure
from models.delivery import Delivery, DeliveryStatus
from models.notification import Notification
from models.payment import Payment, PaymentStatus
from models.vendor import Vendor
from models.user import User, UserRole
from services.delivery_repository import DeliveryRepository
from services.email import (
    send_email,
    delivery_confirmation_body,
    feedback_body,
    vendor_assignment_body,
    welcome_email,
)
from services.pricing import format_price

logger = logging.getLogger(__name__)

@dataclass
class EmissionReport:
    notifications: List[Notification] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

def _short_id(delivery_id: str) -> str:
    return f"{delivery_id[:8]}..."

class NotificationEmitter:
    """Turns lifecycle events into notification records.

    Emission is best-effort: a failed insert becomes a warning on the
    returned report and never propagates to the caller. Nothing is retried.
    """

    def __init__(
        self,
        repository: DeliveryRepository,
        email_sender: Callable[[Optional[str], str, str], bool] = send_email
    ):
        self.repository = repository
        self.email_sender = email_sender

    def notify_transition(self, delivery: Delivery, previous_status: DeliveryStatus) -> EmissionReport:
        report = EmissionReport()
        new_status = DeliveryStatus(delivery.status)
        route = f"from {delivery.pickup_address} to {delivery.drop_address}"

        if previous_status == DeliveryStatus.PENDING and new_status in (DeliveryStatus.ACCEPTED, DeliveryStatus.REJECTED):
            company_name = self._vendor_company_name(delivery.vendor_id, report)
            message = f"Your delivery {route} has been {new_status.value} by {company_name}."
        else:
            message = f"Your delivery {route} has been updated to {new_status.value}."

        self._emit(report, delivery.user_id, message, delivery.id, "delivery")

        # Only customers and admins cancel, never the vendor
        if new_status == DeliveryStatus.CANCELLED and delivery.vendor_id:
            self._emit(
                report,
                delivery.vendor_id,
                f"Delivery {_short_id(delivery.id)} {route} has been cancelled.",
                delivery.id,
                "delivery"
            )

        self._email_user(
            delivery.user_id,
            f"Delivery {_short_id(delivery.id)} is now {new_status.value}",
            message,
            report
        )
        return report

    def notify_delivery_created(self, delivery: Delivery, estimated_price: Decimal) -> EmissionReport:
        report = EmissionReport()
        route = f"from {delivery.pickup_address} to {delivery.drop_address}"
        price = format_price(estimated_price)

        self._emit(
            report,
            delivery.user_id,
            f"Your delivery {route} has been scheduled. Estimated price: {price}",
            delivery.id,
            "delivery"
        )

        vendor = None
        if delivery.vendor_id:
            self._emit(
                report,
                delivery.vendor_id,
                f"New delivery request: From {delivery.pickup_address} to {delivery.drop_address}.",
                delivery.id,
                "delivery"
            )
            vendor = self._load_vendor(delivery.vendor_id, report)

        self._broadcast_to_admins(
            report,
            f"New delivery {_short_id(delivery.id)} scheduled {route}.",
            delivery.id,
            "delivery"
        )

        customer = self._load_user(delivery.user_id, report)
        if customer is not None:
            self._send_email(
                customer.email,
                "Your delivery has been scheduled",
                delivery_confirmation_body(customer.name, delivery, price)
            )
        if vendor is not None:
            self._send_email(
                vendor.email,
                "New delivery assigned",
                vendor_assignment_body(vendor.company_name, delivery)
            )
        return report

    def notify_vendor_assigned(self, delivery: Delivery, vendor: Vendor) -> EmissionReport:
        report = EmissionReport()
        route = f"from {delivery.pickup_address} to {delivery.drop_address}"

        self._emit(
            report,
            vendor.id,
            f"New delivery request: From {delivery.pickup_address} to {delivery.drop_address}.",
            delivery.id,
            "delivery"
        )
        self._emit(
            report,
            delivery.user_id,
            f"Your delivery {route} has been assigned to {vendor.company_name}.",
            delivery.id,
            "delivery"
        )
        self._send_email(vendor.email, "New delivery assigned", vendor_assignment_body(vendor.company_name, delivery))
        return report

    def notify_payment(self, payment: Payment) -> EmissionReport:
        report = EmissionReport()
        short_id = _short_id(payment.delivery_id)

        if payment.status == PaymentStatus.SUCCESSFUL:
            message = f"Your payment of {format_price(Decimal(payment.amount))} for delivery {short_id} was successful."
        else:
            message = f"Your payment for delivery {short_id} failed. Please try again."

        self._emit(report, payment.user_id, message, payment.id, "payment")
        return report

    def notify_registration(self, user: User, company_name: Optional[str] = None) -> EmissionReport:
        report = EmissionReport()
        role = UserRole(user.role)

        self._emit(report, user.id, f"Welcome to CargoMate as a {role.value}!", user.id, "user")

        subject, body = welcome_email(user.name, role, company_name)
        self._send_email(user.email, subject, body)
        return report

    def notify_feedback(
        self,
        sender_id: Optional[str],
        name: str,
        email: str,
        feedback_type: str,
        subject: str,
        message: str
    ) -> EmissionReport:
        """Hand a feedback submission to the admins and the support inbox."""
        report = EmissionReport()

        self._broadcast_to_admins(
            report,
            f"Feedback ({feedback_type}): {subject} - from {name} ({email})",
            sender_id,
            "feedback"
        )
        self._send_email(
            settings.SUPPORT_EMAIL,
            f"New {feedback_type} feedback from {name}: {subject}",
            feedback_body(name, email, feedback_type, subject, message)
        )
        return report

    def _emit(
        self,
        report: EmissionReport,
        user_id: Optional[str],
        message: str,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None
    ) -> None:
        try:
            notification = self.repository.insert_notification(
                user_id=user_id,
                message=message,
                related_id=related_id,
                related_type=related_type
            )
            report.notifications.append(notification)
        except PersistenceFailure as e:
            failure = NotificationEmissionFailure(user_id, e.message)
            logger.warning(failure.message)
            report.warnings.append(failure.message)

    def _broadcast_to_admins(
        self,
        report: EmissionReport,
        message: str,
        related_id: Optional[str] = None,
        related_type: Optional[str] = None
    ) -> None:
        try:
            admins = self.repository.list_admins()
        except PersistenceFailure as e:
            failure = NotificationEmissionFailure(None, e.message)
            logger.warning(failure.message)
            report.warnings.append(failure.message)
            return

        if not admins:
            # Picked up by whichever admin registers first
            self._emit(report, None, message, related_id, related_type)
            return

        for admin in admins:
            self._emit(report, admin.id, message, related_id, related_type)

    def _vendor_company_name(self, vendor_id: Optional[str], report: EmissionReport) -> str:
        vendor = self._load_vendor(vendor_id, report) if vendor_id else None
        return vendor.company_name if vendor else "your vendor"

    def _load_vendor(self, vendor_id: str, report: EmissionReport) -> Optional[Vendor]:
        try:
            return self.repository.get_vendor(vendor_id)
        except PersistenceFailure as e:
            logger.warning(f"Vendor lookup for notification failed: {e.message}")
            report.warnings.append(e.message)
            return None

    def _load_user(self, user_id: str, report: EmissionReport):
        try:
            return self.repository.get_user(user_id)
        except PersistenceFailure as e:
            logger.warning(f"User lookup for notification failed: {e.message}")
            report.warnings.append(e.message)
            return None

    def _email_user(self, user_id: str, subject: str, body: str, report: EmissionReport) -> None:
        user = self._load_user(user_id, report)
        if user is not None:
            self._send_email(user.email, subject, body)

    def _send_email(self, to_email: Optional[str], subject: str, body: str) -> None:
        try:
            self.email_sender(to_email, subject, body)
        except Exception as e:
            logger.warning(f"Email dispatch to {to_email} failed: {str(e)}")
