"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class Identity(BaseModel):
    """
    The authenticated identity behind a request.

    Produced by the auth module when a session token is verified and
    consumed by the tenants module to resolve the tenant context.
    """

    user_id: str = Field(..., description="User ID")
    login: str = Field(..., description="Login identifier used at sign-in")
    session_token: str = Field(..., repr=False, description="Token of the verifying session")
    session_expires_at: datetime = Field(..., description="When the session expires")

    model_config = {
        "frozen": True,  # Make immutable for safety
    }
