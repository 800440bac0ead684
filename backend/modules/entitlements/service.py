"""
Entitlement evaluator implementation.

``evaluate`` is the pure decision function; EntitlementEvaluator only adds
the subscription lookup in front of it.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from shared.clock import Clock, utc_now
from shared.resilience import RetryPolicy, retry_async

from modules.billing.models import PlanTier, Subscription, SubscriptionStatus
from modules.tenants.models import TenantContext

from .gates import FeatureGateTable
from .interfaces import IEntitlementEvaluator
from .models import DenialReason, EntitlementDecision
from .exceptions import EntitlementDeniedError

if TYPE_CHECKING:
    from modules.store.interfaces import IStore

LAPSED_STATUSES = frozenset({SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED})


def evaluate(
    subscription: Optional[Subscription],
    feature_key: str,
    gates: FeatureGateTable,
    now: datetime,
) -> EntitlementDecision:
    """
    Decide a feature for a subscription state.

    A missing subscription is evaluated as free/active. Lapsed and
    expired-trial subscriptions keep only the read-only feature set, which
    is still subject to the tier table.

    Raises:
        UnknownFeatureError: If the feature is not in the gate table
    """
    tier = subscription.plan_tier if subscription else PlanTier.FREE
    status = subscription.status if subscription else SubscriptionStatus.ACTIVE

    tier_allows = gates.allows(feature_key, tier)

    if not gates.is_read_only(feature_key):
        if status in LAPSED_STATUSES:
            return EntitlementDecision.deny(
                feature_key, DenialReason.SUBSCRIPTION_LAPSED, tier, status
            )
        if (
            status == SubscriptionStatus.TRIALING
            and subscription.trial_ends_at is not None
            and subscription.trial_ends_at <= now
        ):
            return EntitlementDecision.deny(feature_key, DenialReason.TRIAL_EXPIRED, tier, status)

    if not tier_allows:
        return EntitlementDecision.deny(feature_key, DenialReason.PLAN_TOO_LOW, tier, status)

    return EntitlementDecision.grant(feature_key, tier, status)


class EntitlementEvaluator(IEntitlementEvaluator):
    """Looks up the tenant's subscription and evaluates the gate table."""

    def __init__(
        self,
        store: "IStore",
        gates: FeatureGateTable,
        clock: Clock = utc_now,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._store = store
        self._gates = gates
        self._clock = clock
        self._retry_policy = retry_policy

    @property
    def gates(self) -> FeatureGateTable:
        return self._gates

    async def check(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        # Fail on unknown features before touching the store
        self._gates.allows(feature_key, PlanTier.FREE)
        subscription = await retry_async(
            lambda: self._store.get_subscription(context.tenant_id),
            operation="get_subscription",
            policy=self._retry_policy,
        )
        return evaluate(subscription, feature_key, self._gates, self._clock())

    async def require(self, context: TenantContext, feature_key: str) -> EntitlementDecision:
        decision = await self.check(context, feature_key)
        if not decision.granted:
            raise EntitlementDeniedError(feature_key, decision.reason)
        return decision
