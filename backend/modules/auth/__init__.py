"""
Authentication module.

Handles credential verification, session issuance, verification and
revocation, and brute-force lockout.

Public API:
- IAuthService: Interface for auth operations
- Credential, Session, UserRecord: Auth data models
- SessionCache: Process-wide session cache
- Auth exceptions: InvalidCredentialError, SessionInvalidError, etc.
"""

from .interfaces import IAuthService
from .models import Credential, Session, UserRecord, LoginRequest, SessionResponse
from .session_cache import SessionCache
from .exceptions import (
    InvalidCredentialError,
    AccountLockedError,
    SessionInvalidError,
    MissingTokenError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Models
    "Credential",
    "Session",
    "UserRecord",
    "LoginRequest",
    "SessionResponse",
    "SessionCache",
    # Exceptions
    "InvalidCredentialError",
    "AccountLockedError",
    "SessionInvalidError",
    "MissingTokenError",
]
