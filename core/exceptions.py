"""
Custom exception classes for robust error handling
"""
from typing import Any, Dict, Optional
from fastapi import status


class BaseCustomException(Exception):
    """Base custom exception class"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class BusinessLogicError(BaseCustomException):
    """Raised when business logic validation fails"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ResourceNotFoundError(BaseCustomException):
    """Raised when a requested resource is not found"""

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details
        )


class AuthorizationError(BaseCustomException):
    """Raised when authorization fails"""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ValidationError(BaseCustomException):
    """Raised when data validation fails"""

    def __init__(self, message: str, field: str = None, details: Optional[Dict[str, Any]] = None):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class ExternalServiceError(BaseCustomException):
    """Raised when external service calls fail"""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        full_message = f"External service '{service}' error: {message}"
        super().__init__(
            message=full_message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


class DeliveryNotFound(ResourceNotFoundError):
    """Raised when a delivery id does not resolve (or is not visible to the actor)"""

    def __init__(self, delivery_id: str):
        super().__init__(resource="Delivery", identifier=str(delivery_id))
        self.delivery_id = delivery_id


class NotAuthorized(AuthorizationError):
    """Raised when an actor may not act on a delivery.

    The message is deliberately generic: it never says whether the delivery
    belongs to someone else or what state it is in.
    """

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message=message)


class InvalidTransition(BusinessLogicError):
    """Raised when the requested status is not reachable from the current one"""

    def __init__(self, current_status: str, requested_status: str):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message=f"Cannot move delivery from '{current_status}' to '{requested_status}'",
            details={
                "current_status": current_status,
                "requested_status": requested_status
            }
        )


class ConcurrentModification(BaseCustomException):
    """Raised when the stored status changed under the caller"""

    def __init__(self, delivery_id: str, expected_status: str, actual_status: Optional[str] = None):
        details = {"delivery_id": str(delivery_id), "expected_status": expected_status}
        if actual_status is not None:
            details["actual_status"] = actual_status
        super().__init__(
            message="Delivery was modified by another request, reload and try again",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class PersistenceFailure(ExternalServiceError):
    """Raised when the database rejects or fails a call"""

    def __init__(self, operation: str, message: str):
        super().__init__(
            service="database",
            message=f"{operation} failed: {message}",
            details={"operation": operation}
        )
        self.operation = operation


class NotificationEmissionFailure(BaseCustomException):
    """Non-fatal: a notification record could not be created"""

    def __init__(self, target_user_id: Optional[str], message: str):
        super().__init__(
            message=f"Could not notify {target_user_id or 'admins'}: {message}",
            details={"target_user_id": target_user_id}
        )
        self.target_user_id = target_user_id
