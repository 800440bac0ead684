"""
Entitlement API endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_gateway
from api.middleware.auth import get_tenant_context
from api.models.errors import TENANT_ERROR_RESPONSES, ErrorResponse
from modules.gateway.service import Gateway
from modules.tenants.models import TenantContext

from .models import EntitlementDecision

router = APIRouter()


@router.get(
    "/{feature_key}",
    response_model=EntitlementDecision,
    responses={**TENANT_ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Unknown feature"}},
)
async def get_entitlement(
    feature_key: str,
    context: TenantContext = Depends(get_tenant_context),
    gateway: Gateway = Depends(get_gateway),
) -> EntitlementDecision:
    """
    Check whether the resolved tenant may use a feature.

    A denial is a normal 200 response with ``granted: false`` and a reason.
    """
    return await gateway.check(context, feature_key)
