"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Protocol, runtime_checkable

from shared.models import Identity

from .models import Credential, Session


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for session authentication.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    async def authenticate(self, credential: Credential) -> Session:
        """
        Verify a credential and open a new session.

        Args:
            credential: Login identifier and secret

        Returns:
            The newly persisted Session

        Raises:
            AccountLockedError: If the login is locked out (no comparison is made)
            InvalidCredentialError: If the login is unknown or the secret is wrong
        """
        ...

    async def verify(self, token: str) -> Identity:
        """
        Verify a session token.

        Args:
            token: Opaque session token

        Returns:
            Identity of the session owner

        Raises:
            MissingTokenError: If no token was given
            SessionInvalidError: If the token is unknown, revoked or expired
        """
        ...

    async def revoke(self, token: str) -> None:
        """
        Revoke a session. Idempotent: unknown or already revoked tokens are a no-op.
        """
        ...
