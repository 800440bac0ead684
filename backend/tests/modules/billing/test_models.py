import pytest

from modules.billing.models import PlanTier, Subscription, SubscriptionStatus, TIER_ORDER


class TestPlanTier:
    def test_order(self):
        assert TIER_ORDER == (PlanTier.FREE, PlanTier.PRO, PlanTier.ENTERPRISE)
        assert [tier.rank for tier in TIER_ORDER] == [0, 1, 2]

    def test_at_least(self):
        assert PlanTier.ENTERPRISE.at_least(PlanTier.PRO)
        assert PlanTier.PRO.at_least(PlanTier.PRO)
        assert not PlanTier.FREE.at_least(PlanTier.PRO)


class TestSubscription:
    def test_defaults(self):
        sub = Subscription(tenant_id="acme")
        assert sub.plan_tier == PlanTier.FREE
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.version == 1

    def test_immutable(self):
        sub = Subscription(tenant_id="acme")
        with pytest.raises(Exception):
            sub.status = SubscriptionStatus.CANCELED

    def test_version_must_be_positive(self):
        with pytest.raises(Exception):
            Subscription(tenant_id="acme", version=0)
