"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.

Credential failures deliberately share one message so a caller cannot tell
an unknown login from a wrong secret.
"""

from shared.exceptions import AuthenticationError

GENERIC_CREDENTIAL_MESSAGE = "Invalid login or password"


class InvalidCredentialError(AuthenticationError):
    """Raised when a login/secret pair does not authenticate."""

    def __init__(self, message: str = GENERIC_CREDENTIAL_MESSAGE):
        super().__init__(message, code="INVALID_CREDENTIAL")


class AccountLockedError(AuthenticationError):
    """
    Raised when a login has too many recent failed attempts.

    The attempt is rejected before any credential comparison happens.
    """

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            "Too many failed sign-in attempts. Try again later.",
            code="ACCOUNT_LOCKED",
            details={"retry_after_seconds": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds


class SessionInvalidError(AuthenticationError):
    """Raised when a session token is unknown, revoked or expired."""

    def __init__(self, reason: str = "unknown"):
        super().__init__(
            "Session is invalid or has expired",
            code="SESSION_INVALID",
            details={"reason": reason},
        )
        self.reason = reason


class MissingTokenError(AuthenticationError):
    """Raised when no session token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")
