"""
Entitlements module interface.

Route handlers and other modules depend on IEntitlementEvaluator only.
"""

from typing import Protocol, runtime_checkable

from modules.tenants.models import TenantContext

from .models import EntitlementDecision


@runtime_checkable
class IEntitlementEvaluator(Protocol):
    """Interface for feature entitlement checks."""

    async def check(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        """
        Decide whether the tenant may use a feature.

        Side-effect free: with unchanged subscription state, repeated calls
        return equal decisions, so callers may cache them.

        Raises:
            UnknownFeatureError: If the feature is not in the gate table
        """
        ...

    async def require(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        """
        Like ``check`` but raises when denied.

        Raises:
            EntitlementDeniedError: If the decision is a denial
        """
        ...
