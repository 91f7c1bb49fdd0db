"""
OrderDesk - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Usage:
    from app.exceptions import NotFoundError, IllegalTransition

    # In a service
    raise NotFoundError("Order", order_id)

    # Transition rejected by the policy
    raise IllegalTransition(current="shipped", requested="pending", allowed=["shipped", "delivered"])
"""
from typing import Any, Dict, List, Optional


class OrderDeskException(Exception):
    """
    Base exception for all OrderDesk errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "ORDERDESK_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(OrderDeskException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(OrderDeskException):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(OrderDeskException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(OrderDeskException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 502 Upstream Errors
# ===================


class IntegrationError(OrderDeskException):
    """Raised when the backing order service fails."""

    error_code = "INTEGRATION_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str = "External service error",
        *,
        service: str = "order-store",
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["service"] = service
        super().__init__(message, details=details)


# ===================
# Order Status Transition Errors
# ===================


class TransitionError(OrderDeskException):
    """Common base for every failure a transition request can produce."""


class PreconditionFailure(TransitionError, ValidationError):
    """Raised before any network call when the order identifier is unusable."""

    error_code = "PRECONDITION_FAILED"

    def __init__(
        self,
        message: str = "Order ID is missing. Cannot update status.",
        *,
        field: Optional[str] = "order_id",
        details: Optional[Dict[str, Any]] = None,
    ):
        ValidationError.__init__(self, message, field=field, details=details)


class IllegalTransition(TransitionError, InvalidStateError):
    """Raised when the requested status is not reachable from the current one."""

    error_code = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        *,
        current: Optional[str],
        requested: str,
        allowed: List[str],
        details: Optional[Dict[str, Any]] = None,
    ):
        self.current = current
        self.requested = requested
        self.allowed = allowed
        details = details or {}
        details["requested_state"] = requested
        message = (
            f"Cannot change order status from '{current or 'unknown'}' to '{requested}'. "
            f"Allowed: {', '.join(allowed) if allowed else 'none (terminal state)'}"
        )
        InvalidStateError.__init__(
            self,
            message,
            current_state=current,
            allowed_states=allowed,
            details=details,
        )


class TransportFailure(TransitionError, IntegrationError):
    """
    Raised when the backing order service call fails.

    `message` is always safe to show to a user; the raw transport error is
    only ever logged.
    """

    error_code = "TRANSPORT_FAILURE"

    def __init__(
        self,
        message: str = "Failed to update order status.",
        *,
        http_status: Optional[int] = None,
        reason: str = "server",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.http_status = http_status
        self.reason = reason
        details = details or {}
        details["reason"] = reason
        if http_status is not None:
            details["http_status"] = http_status
        IntegrationError.__init__(self, message, details=details)
        if reason == "not_found":
            self.status_code = 404


class TransitionInFlight(ConflictError):
    """Raised when a surface already has a request running for the same order."""

    error_code = "TRANSITION_IN_FLIGHT"

    def __init__(self, order_id: str, surface: str):
        super().__init__(
            "A status update for this order is already in progress.",
            details={"order_id": order_id, "surface": surface},
        )
