from typing import Optional, Tuple
import logging

from core.config import settings
from models.user import UserRole

logger = logging.getLogger(__name__)

def send_email(to_email: Optional[str], subject: str, body: str) -> bool:
    """Dispatch an email.

    No mail provider is wired in; messages are written to the log. Callers
    treat this as fire-and-forget and never depend on the result.
    """
    if not settings.EMAIL_ENABLED:
        return False

    if not to_email:
        logger.warning(f"Skipping email '{subject}': recipient has no address")
        return False

    logger.info(f"Sending email from {settings.FROM_EMAIL} to {to_email}: {subject}")
    logger.debug(f"Email content for {to_email}:\n{body}")
    return True

def delivery_confirmation_body(name: str, delivery, estimated_price: str) -> str:
    return (
        f"Hello {name},\n\n"
        f"Your delivery has been scheduled successfully!\n\n"
        f"Delivery ID: {delivery.id}\n"
        f"Pickup: {delivery.pickup_address}\n"
        f"Delivery: {delivery.drop_address}\n"
        f"Scheduled Date: {delivery.scheduled_date or 'Not scheduled'}\n"
        f"Weight: {delivery.weight_kg} kg\n"
        f"Package Type: {delivery.package_type.value}\n"
        f"Estimated Price: {estimated_price}\n\n"
        f"You can track your delivery at {settings.FRONTEND_BASE_URL}/tracking?id={delivery.id}\n"
    )

def vendor_assignment_body(company_name: str, delivery) -> str:
    return (
        f"Hello {company_name},\n\n"
        f"A new delivery has been assigned to your company!\n\n"
        f"Delivery ID: {delivery.id}\n"
        f"Pickup: {delivery.pickup_address}\n"
        f"Delivery: {delivery.drop_address}\n"
        f"Weight: {delivery.weight_kg} kg\n"
        f"Package Type: {delivery.package_type.value}\n\n"
        f"Please log in to your vendor dashboard to accept or reject this delivery.\n"
    )

WELCOME_TEMPLATES = {
    UserRole.CUSTOMER: (
        "Welcome to CargoMate!",
        "You can now log in to your account and start scheduling deliveries.\n"
        "Thank you for choosing CargoMate!"
    ),
    UserRole.VENDOR: (
        "Welcome to CargoMate Vendor Portal!",
        "You can now log in to your vendor dashboard to manage deliveries.\n"
        "Thank you for partnering with CargoMate!"
    ),
    UserRole.ADMIN: (
        "Welcome to CargoMate Admin Portal!",
        "You can now log in to your admin dashboard to manage the platform.\n"
        "Thank you for being part of the CargoMate team!"
    ),
}

def welcome_email(name: str, role: UserRole, company_name: Optional[str] = None) -> Tuple[str, str]:
    """Subject and body of the welcome email for a new account."""
    role = UserRole(role)
    subject, closing = WELCOME_TEMPLATES[role]
    lines = [f"Hello {name},", "", "Welcome to CargoMate! Your account has been created successfully."]
    if role == UserRole.VENDOR:
        lines.append(f"Company: {company_name or 'Not specified'}")
    if role != UserRole.CUSTOMER:
        lines.append(f"Role: {role.value.capitalize()}")
    lines += ["", closing, "", "Best regards,", "The CargoMate Team"]
    return subject, "\n".join(lines) + "\n"

def feedback_body(name: str, email: str, feedback_type: str, subject: str, message: str) -> str:
    return (
        f"New feedback received:\n\n"
        f"From: {name} ({email})\n"
        f"Type: {feedback_type}\n"
        f"Subject: {subject}\n\n"
        f"{message}\n"
    )
