"""
Request gateway.

The caller-facing surface of the system. Every request goes
Authenticator -> Tenant Resolver -> Entitlement Evaluator -> handler, and
this class is the one place that pipeline is composed.
"""

from typing import Optional

from shared.models import Identity

from modules.auth.interfaces import IAuthService
from modules.auth.models import Credential, Session
from modules.entitlements.interfaces import IEntitlementEvaluator
from modules.entitlements.models import EntitlementDecision
from modules.tenants.interfaces import ITenantResolver
from modules.tenants.models import TenantContext


class Gateway:
    """
    The operations callers need: ``authenticate``, ``authorize_request``
    (verify + resolve + authorize_access) and ``check``, plus ``identify``
    and ``sign_out`` for the session endpoints.

    Errors from each stage propagate unchanged so the HTTP layer can map
    every kind to its own response.
    """

    def __init__(
        self,
        auth: IAuthService,
        tenants: ITenantResolver,
        entitlements: IEntitlementEvaluator,
    ):
        self._auth = auth
        self._tenants = tenants
        self._entitlements = entitlements

    async def authenticate(self, credential: Credential) -> Session:
        return await self._auth.authenticate(credential)

    async def identify(self, token: str) -> Identity:
        """Verify a token without resolving a tenant."""
        return await self._auth.verify(token)

    async def sign_out(self, token: str) -> None:
        await self._auth.revoke(token)

    async def authorize_request(
        self,
        token: str,
        tenant_id: Optional[str] = None,
        resource_tenant_id: Optional[str] = None,
    ) -> TenantContext:
        """
        Run the per-request pipeline.

        Args:
            token: Session token from the request
            tenant_id: Explicit tenant selection, if the caller sent one
            resource_tenant_id: Tenant owning the addressed resource, if any

        Returns:
            The resolved TenantContext
        """
        identity = await self._auth.verify(token)
        context = await self._tenants.resolve(identity, tenant_id)
        if resource_tenant_id is not None:
            self._tenants.authorize_access(context, resource_tenant_id)
        return context

    async def check(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        return await self._entitlements.check(context, feature_key)

    async def require(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        return await self._entitlements.require(context, feature_key)
