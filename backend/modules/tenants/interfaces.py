"""
Tenants module interface.

Other modules should depend on ITenantResolver, not the concrete implementation.
"""

from typing import Optional, Protocol, runtime_checkable

from shared.models import Identity

from .models import TenantContext


@runtime_checkable
class ITenantResolver(Protocol):
    """
    Interface for tenant resolution and the isolation gate.
    """

    async def resolve(self, identity: Identity, tenant_id: Optional[str] = None) -> TenantContext:
        """
        Map an authenticated identity to the tenant the request runs in.

        Args:
            identity: Verified identity
            tenant_id: Explicit tenant selection (required with several memberships)

        Returns:
            TenantContext for the selected tenant

        Raises:
            NoTenantMembershipError: If the user is not a member (of that tenant)
            AmbiguousTenantError: If several memberships exist and none was selected
            TenantUnavailableError: If the tenant is suspended or deleted
        """
        ...

    def authorize_access(self, context: TenantContext, resource_tenant_id: str) -> None:
        """
        Isolation gate: allow access only to data of the resolved tenant.

        Raises:
            CrossTenantAccessError: If ``resource_tenant_id`` differs from the context
        """
        ...
