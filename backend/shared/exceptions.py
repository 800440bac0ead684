"""
Base exception classes for the Tenantgate backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application: the API layer
maps each family to a distinct HTTP response.
"""

from typing import Optional, Any


class TenantgateError(Exception):
    """
    Base exception for all Tenantgate errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(TenantgateError):
    """Resource not found."""

    pass


class ValidationError(TenantgateError):
    """Input validation failed."""

    pass


class AuthenticationError(TenantgateError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(TenantgateError):
    """Authorization failed (insufficient permissions)."""

    pass


class ExternalServiceError(TenantgateError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class TransientStoreFailureError(ExternalServiceError):
    """
    The persistence collaborator failed in a way that may succeed on retry.

    Raised for timeouts and connection-level failures. Callers retry these
    with bounded backoff; every other error kind is terminal for the request.
    """

    retryable = True

    def __init__(self, operation: str, reason: str = "store unavailable"):
        super().__init__(
            f"Transient store failure during {operation}: {reason}",
            service="store",
            code="TRANSIENT_STORE_FAILURE",
            details={"operation": operation},
        )
        self.operation = operation
