"""
Session authentication dependencies.

Extracts the bearer session token and runs it through the gateway
pipeline: verify the session, then resolve the tenant from the optional
``X-Tenant-ID`` header.
"""

from typing import Optional
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.models import Identity
from modules.auth.exceptions import MissingTokenError
from modules.gateway.service import Gateway
from modules.tenants.models import TenantContext

from ..dependencies import get_gateway

# Bearer token extractor; a missing header is reported as MissingTokenError
bearer_scheme = HTTPBearer(auto_error=False)

TENANT_HEADER = "X-Tenant-ID"


async def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Dependency that returns the raw bearer token.

    Raises:
        MissingTokenError: If no Authorization header was sent
    """
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()
    return credentials.credentials


async def get_identity(
    token: str = Depends(get_session_token),
    gateway: Gateway = Depends(get_gateway),
) -> Identity:
    """
    Dependency that requires a valid session.

    Usage:
        @router.get("/profile")
        async def profile(identity: Identity = Depends(get_identity)):
            return {"user_id": identity.user_id}
    """
    return await gateway.identify(token)


async def get_tenant_context(
    token: str = Depends(get_session_token),
    selected_tenant: Optional[str] = Header(default=None, alias=TENANT_HEADER),
    gateway: Gateway = Depends(get_gateway),
) -> TenantContext:
    """
    Dependency that requires a valid session and a resolvable tenant.

    Users with a single membership may omit the header; users with several
    must name the tenant.
    """
    return await gateway.authorize_request(token, tenant_id=selected_tenant or None)


# Type aliases for cleaner route definitions
RequireIdentity = Depends(get_identity)
RequireTenant = Depends(get_tenant_context)
