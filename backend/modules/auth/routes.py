"""
Session API endpoints.

Sign-in opens a session, sign-out revokes the bearer token, and ``/me``
returns the verified identity with its resolved tenant.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from api.dependencies import get_gateway
from api.middleware.auth import get_session_token, get_tenant_context
from api.models.errors import AUTH_ERROR_RESPONSES, TENANT_ERROR_RESPONSES, ErrorResponse
from modules.gateway.service import Gateway
from modules.tenants.models import TenantContext

from .models import LoginRequest, SessionResponse

router = APIRouter()


class MeResponse(BaseModel):
    """Current identity and the tenant the request resolved to."""

    user_id: str
    login: str
    session_expires_at: datetime
    tenant_id: str
    tenant_name: Optional[str] = None
    role: str


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid login or password"},
        429: {"model": ErrorResponse, "description": "Login temporarily locked"},
    },
)
async def create_session(
    request: LoginRequest,
    gateway: Gateway = Depends(get_gateway),
) -> SessionResponse:
    """
    Sign in with login and password.

    Returns an opaque bearer token. Unknown logins and wrong passwords get
    the same 401 response.
    """
    session = await gateway.authenticate(request.to_credential())
    return SessionResponse(
        token=session.token,
        expires_at=session.expires_at,
        user_id=session.user_id,
    )


@router.delete(
    "/sessions/current",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=AUTH_ERROR_RESPONSES,
)
async def delete_current_session(
    token: str = Depends(get_session_token),
    gateway: Gateway = Depends(get_gateway),
) -> Response:
    """
    Sign out: revoke the bearer token.

    Idempotent; revoking an unknown or already revoked token also returns 204.
    """
    await gateway.sign_out(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=MeResponse, responses=TENANT_ERROR_RESPONSES)
async def get_me(
    token: str = Depends(get_session_token),
    context: TenantContext = Depends(get_tenant_context),
    gateway: Gateway = Depends(get_gateway),
) -> MeResponse:
    identity = await gateway.identify(token)
    return MeResponse(
        user_id=identity.user_id,
        login=identity.login,
        session_expires_at=identity.session_expires_at,
        tenant_id=context.tenant_id,
        tenant_name=context.tenant_name,
        role=context.role,
    )
