"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, SecretStr


class Credential(BaseModel):
    """
    Login identifier plus secret material supplied at sign-in.

    The secret is held as a SecretStr so it never shows up in reprs or logs,
    and it is never persisted.
    """

    login: str = Field(..., min_length=1, description="Login identifier (e.g., email)")
    secret: SecretStr = Field(..., description="Password or other secret material")


class UserRecord(BaseModel):
    """A user as stored by the persistence collaborator."""

    id: str = Field(..., description="User ID")
    login: str = Field(..., description="Login identifier")
    password_hash: str = Field(..., repr=False, description="bcrypt hash of the secret")
    is_active: bool = Field(default=True, description="Whether the user may sign in")


class Session(BaseModel):
    """
    A time-bounded, revocable proof of authenticated identity.

    The only mutation after creation is setting the revocation flag.
    """

    token: str = Field(..., repr=False, description="Opaque random session token")
    user_id: str = Field(..., description="Owning user ID")
    login: str = Field(..., description="Login used to create the session")
    created_at: datetime = Field(..., description="Creation time")
    expires_at: datetime = Field(..., description="Expiry time")
    revoked: bool = Field(default=False, description="Revocation flag")
    revoked_at: Optional[datetime] = Field(None, description="When the session was revoked")

    def is_valid(self, now: datetime) -> bool:
        """A session is valid while not revoked and its expiry is strictly in the future."""
        return not self.revoked and self.expires_at > now


class SessionResponse(BaseModel):
    """API response for a successful sign-in."""

    token: str = Field(..., description="Bearer token for subsequent requests")
    token_type: str = Field(default="bearer")
    expires_at: datetime = Field(..., description="Session expiry time")
    user_id: str = Field(..., description="Authenticated user ID")


class LoginRequest(BaseModel):
    """API request body for sign-in."""

    login: str = Field(..., min_length=1)
    password: SecretStr

    def to_credential(self) -> Credential:
        return Credential(login=self.login, secret=self.password)
