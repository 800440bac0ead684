"""
Tenant API endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_store, get_tenant_resolver
from api.middleware.auth import get_tenant_context
from api.models.errors import TENANT_ERROR_RESPONSES
from shared.resilience import retry_async

from .models import TenantContext, TenantResponse, TenantStatus
from .service import TenantResolver

router = APIRouter()


@router.get("/{tenant_id}", response_model=TenantResponse, responses=TENANT_ERROR_RESPONSES)
async def get_tenant(
    tenant_id: str,
    context: TenantContext = Depends(get_tenant_context),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    store=Depends(get_store),
) -> TenantResponse:
    """
    Get a tenant the caller belongs to.

    The path tenant must be the request's resolved tenant; anything else is
    refused as cross-tenant access.
    """
    resolver.authorize_access(context, tenant_id)
    tenant = await retry_async(lambda: store.get_tenant(tenant_id), operation="get_tenant")
    return TenantResponse(
        id=tenant_id,
        name=tenant.name if tenant else (context.tenant_name or ""),
        status=tenant.status if tenant else TenantStatus.ACTIVE,
        role=context.role,
    )
