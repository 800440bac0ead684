"""Tests for the subscription updater."""

import asyncio
import logging
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from dateutil.relativedelta import relativedelta

from modules.audit.models import AuditEventType
from modules.billing.exceptions import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    SubscriptionNotFoundError,
)
from modules.billing.models import (
    BillingEvent,
    BillingEventType,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    SubscriptionTransition,
)
from modules.billing.service import MAX_CAS_ATTEMPTS, SubscriptionUpdater
from modules.entitlements.gates import load_feature_gates
from modules.entitlements.models import DenialReason
from modules.entitlements.service import EntitlementEvaluator
from modules.tenants.models import TenantContext
from shared.exceptions import TransientStoreFailureError

from tests.conftest import FAST_RETRY, FIXED_NOW, make_settings


def billing_event(event_id: str, event_type: BillingEventType, tenant_id: str = "globex", **extra):
    return BillingEvent(
        event_id=event_id,
        type=event_type,
        tenant_id=tenant_id,
        occurred_at=FIXED_NOW,
        **extra,
    )


class TestSubscriptionUpdater:
    @pytest.fixture
    def updater(self, store, audit, clock):
        return SubscriptionUpdater(
            store=store,
            audit=audit,
            settings=make_settings(),
            clock=clock,
            retry_policy=FAST_RETRY,
        )

    @pytest.mark.asyncio
    async def test_apply_changes_status_and_appends_history(self, updater, store, audit):
        result = await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))

        assert result.status == SubscriptionStatus.PAST_DUE
        assert result.version == 2
        stored = await store.get_subscription("globex")
        assert stored == result

        [transition] = await store.get_subscription_history("globex")
        assert transition.from_status == SubscriptionStatus.ACTIVE
        assert transition.to_status == SubscriptionStatus.PAST_DUE
        assert transition.event_id == "evt-1"
        assert await store.is_event_processed("evt-1")

        [audited] = audit.of_type(AuditEventType.SUBSCRIPTION_CHANGED)
        assert audited.tenant_id == "globex"
        assert audited.details["to_status"] == "past_due"

    @pytest.mark.asyncio
    async def test_duplicate_event_applied_once(self, updater, store):
        first = await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_SUCCEEDED))
        second = await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_SUCCEEDED))

        assert first is not None
        assert second is None
        assert len(await store.get_subscription_history("globex")) == 1

    @pytest.mark.asyncio
    async def test_noop_event_is_recorded(self, updater, store):
        assert await updater.apply(
            billing_event("evt-1", BillingEventType.PLAN_CHANGED, plan_tier=PlanTier.PRO)
        ) is None
        assert await store.is_event_processed("evt-1")
        assert await store.get_subscription_history("globex") == []

    @pytest.mark.asyncio
    async def test_invalid_transition_raises(self, updater, store):
        store.put_subscription(
            Subscription(tenant_id="globex", plan_tier=PlanTier.PRO, status=SubscriptionStatus.CANCELED)
        )
        with pytest.raises(InvalidTransitionError):
            await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_SUCCEEDED))

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, updater):
        with pytest.raises(SubscriptionNotFoundError):
            await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED, tenant_id="nobody"))

    @pytest.mark.asyncio
    async def test_cas_conflict_is_retried_with_fresh_read(self, updater, store):
        real_update = store.update_subscription_status
        calls = {"n": 0}

        async def conflict_once(subscription, expected_version, transition):
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConcurrentUpdateError(subscription.tenant_id, expected_version)
            return await real_update(subscription, expected_version, transition)

        store.update_subscription_status = conflict_once
        result = await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
        assert result.status == SubscriptionStatus.PAST_DUE
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_cas_conflict_gives_up(self, updater, store):
        store.update_subscription_status = AsyncMock(
            side_effect=ConcurrentUpdateError("globex", 1)
        )
        with pytest.raises(ConcurrentUpdateError):
            await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
        assert store.update_subscription_status.await_count == MAX_CAS_ATTEMPTS

    @pytest.mark.asyncio
    async def test_two_writers_apply_a_duplicate_once(self, store, audit, clock):
        """The same delivery reaching two writers advances the renewal date once."""
        writers = [
            SubscriptionUpdater(store=store, audit=audit, settings=make_settings(),
                                clock=clock, retry_policy=FAST_RETRY)
            for _ in range(2)
        ]
        before = await store.get_subscription("globex")
        event = billing_event("evt-dup", BillingEventType.PAYMENT_SUCCEEDED)

        results = await asyncio.gather(*(writer.apply(event) for writer in writers))

        assert sum(r is not None for r in results) == 1
        history = await store.get_subscription_history("globex")
        assert [t.event_id for t in history] == ["evt-dup"]
        after = await store.get_subscription("globex")
        assert after.version == 2
        assert after.renewal_at == before.renewal_at + relativedelta(months=1)
        assert len(audit.of_type(AuditEventType.SUBSCRIPTION_CHANGED)) == 1

    @pytest.mark.asyncio
    async def test_cas_retry_skips_event_the_other_writer_applied(self, updater, store):
        """A conflict caused by the same event is not applied again on the fresh read."""
        real_update = store.update_subscription_status

        async def other_writer_wins(subscription, expected_version, transition):
            await real_update(subscription, expected_version, transition)
            raise ConcurrentUpdateError(subscription.tenant_id, expected_version)

        store.update_subscription_status = AsyncMock(side_effect=other_writer_wins)
        result = await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_SUCCEEDED))

        assert result is None
        assert store.update_subscription_status.await_count == 1
        assert (await store.get_subscription("globex")).version == 2
        assert len(await store.get_subscription_history("globex")) == 1

    @pytest.mark.asyncio
    async def test_trial_started_opens_trial(self, updater, store, audit, clock):
        result = await updater.apply(
            billing_event("evt-trial", BillingEventType.TRIAL_STARTED, tenant_id="initech")
        )

        assert result.status == SubscriptionStatus.TRIALING
        assert result.plan_tier == PlanTier.PRO
        assert result.trial_ends_at == clock.now + timedelta(days=14)
        [entry] = await store.get_subscription_history("initech")
        assert entry.event_id == "evt-trial"
        assert await store.is_event_processed("evt-trial")
        [audited] = audit.of_type(AuditEventType.SUBSCRIPTION_CHANGED)
        assert audited.details["event_type"] == "trial_started"

    @pytest.mark.asyncio
    async def test_trial_started_uses_event_tier_and_applies_once(self, updater, store):
        event = billing_event("evt-trial", BillingEventType.TRIAL_STARTED, tenant_id="initech",
                              plan_tier=PlanTier.ENTERPRISE)

        assert (await updater.apply(event)).plan_tier == PlanTier.ENTERPRISE
        assert await updater.apply(event) is None
        assert len(await store.get_subscription_history("initech")) == 1

    @pytest.mark.asyncio
    async def test_trial_started_keeps_existing_subscription(self, updater, store):
        existing = await store.get_subscription("globex")
        result = await updater.apply(billing_event("evt-trial", BillingEventType.TRIAL_STARTED))

        assert result == existing
        assert await store.get_subscription_history("globex") == []

    @pytest.mark.asyncio
    async def test_stale_version_write_is_rejected_by_store(self, store):
        current = await store.get_subscription("globex")
        updated = current.model_copy(update={"status": SubscriptionStatus.PAST_DUE, "version": 2})

        transition = SubscriptionTransition(
            tenant_id="globex",
            to_status=SubscriptionStatus.PAST_DUE,
            to_tier=PlanTier.PRO,
            occurred_at=FIXED_NOW,
            version=2,
        )
        await store.update_subscription_status(updated, 1, transition)
        with pytest.raises(ConcurrentUpdateError):
            await store.update_subscription_status(updated, 1, transition)


class TestWorker:
    @pytest.fixture
    def updater(self, store, audit, clock):
        return SubscriptionUpdater(
            store=store,
            audit=audit,
            settings=make_settings(),
            clock=clock,
            retry_policy=FAST_RETRY,
            redelivery_policy=FAST_RETRY,
        )

    @pytest.mark.asyncio
    async def test_events_apply_in_submission_order(self, updater, store):
        await updater.start()
        try:
            await updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
            await updater.submit(billing_event("evt-2", BillingEventType.PAYMENT_SUCCEEDED))
            await updater.submit(billing_event("evt-3", BillingEventType.PLAN_CHANGED,
                                               plan_tier=PlanTier.ENTERPRISE))
            await updater.drain()
        finally:
            await updater.stop()

        history = await store.get_subscription_history("globex")
        assert [t.event_id for t in history] == ["evt-1", "evt-2", "evt-3"]
        assert [t.version for t in history] == [2, 3, 4]
        final = await store.get_subscription("globex")
        assert final.status == SubscriptionStatus.ACTIVE
        assert final.plan_tier == PlanTier.ENTERPRISE

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_deliveries_apply_once(self, updater, store):
        await updater.start()
        try:
            await asyncio.gather(
                *[updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED)) for _ in range(10)]
            )
            await updater.drain()
        finally:
            await updater.stop()
        assert len(await store.get_subscription_history("globex")) == 1

    @pytest.mark.asyncio
    async def test_rejected_event_is_recorded_and_worker_survives(self, updater, store):
        store.put_subscription(
            Subscription(tenant_id="acme", plan_tier=PlanTier.FREE, status=SubscriptionStatus.CANCELED)
        )
        await updater.start()
        try:
            await updater.submit(billing_event("evt-bad", BillingEventType.PAYMENT_SUCCEEDED, tenant_id="acme"))
            await updater.submit(billing_event("evt-ok", BillingEventType.PAYMENT_FAILED))
            await updater.drain()
        finally:
            await updater.stop()

        assert await store.is_event_processed("evt-bad")
        assert (await store.get_subscription("globex")).status == SubscriptionStatus.PAST_DUE

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried_in_place(self, updater, store):
        real_get = store.get_subscription
        failures = {"left": FAST_RETRY.max_attempts}

        async def flaky_get(tenant_id):
            if failures["left"]:
                failures["left"] -= 1
                raise TransientStoreFailureError("get_subscription")
            return await real_get(tenant_id)

        store.get_subscription = flaky_get
        await updater.start()
        try:
            await updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
            await updater.drain()
        finally:
            await updater.stop()

        assert (await real_get("globex")).status == SubscriptionStatus.PAST_DUE

    @pytest.mark.asyncio
    async def test_retried_event_keeps_its_place_in_line(self, updater, store):
        """A payment failure that needs a second delivery still applies before the later success."""
        real_get = store.get_subscription
        failures = {"left": FAST_RETRY.max_attempts + 1}

        async def flaky_get(tenant_id):
            if failures["left"]:
                failures["left"] -= 1
                raise TransientStoreFailureError("get_subscription")
            return await real_get(tenant_id)

        store.get_subscription = flaky_get
        await updater.start()
        try:
            await updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
            await updater.submit(billing_event("evt-2", BillingEventType.PAYMENT_SUCCEEDED))
            await updater.drain()
        finally:
            await updater.stop()

        history = await store.get_subscription_history("globex")
        assert [t.event_id for t in history] == ["evt-1", "evt-2"]
        final = await real_get("globex")
        assert final.status == SubscriptionStatus.ACTIVE
        assert final.past_due_since is None

    @pytest.mark.asyncio
    async def test_gives_up_after_bounded_deliveries(self, updater, store, caplog):
        real_get = store.get_subscription

        async def broken_for_globex(tenant_id):
            if tenant_id == "globex":
                raise TransientStoreFailureError("get_subscription")
            return await real_get(tenant_id)

        store.get_subscription = AsyncMock(side_effect=broken_for_globex)
        await updater.start()
        try:
            with caplog.at_level(logging.ERROR, logger="modules.billing.service"):
                await updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
                await updater.submit(billing_event("evt-2", BillingEventType.PAYMENT_FAILED, tenant_id="acme"))
                await updater.drain()
        finally:
            await updater.stop()

        globex_reads = [c for c in store.get_subscription.await_args_list if c.args == ("globex",)]
        assert len(globex_reads) == FAST_RETRY.max_attempts * FAST_RETRY.max_attempts
        assert not await store.is_event_processed("evt-1")
        assert (await real_get("acme")).status == SubscriptionStatus.PAST_DUE
        assert any("Giving up on billing event evt-1" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_stop_drains_queue(self, updater, store):
        await updater.start()
        await updater.submit(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
        await updater.stop()
        assert not updater.running
        assert updater.pending == 0
        assert await store.is_event_processed("evt-1")


class TestGracePeriod:
    @pytest.mark.asyncio
    async def test_active_past_due_canceled_then_lapsed(self, store, audit, clock):
        """After the grace period a past_due tenant is canceled and gated features lapse."""
        updater = SubscriptionUpdater(
            store=store, audit=audit, settings=make_settings(), clock=clock, retry_policy=FAST_RETRY
        )
        evaluator = EntitlementEvaluator(
            store=store, gates=load_feature_gates(), clock=clock, retry_policy=FAST_RETRY
        )
        context = TenantContext(tenant_id="globex", user_id="user-bob")
        assert (await evaluator.check(context, "advanced-export")).granted

        await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
        assert (await store.get_subscription("globex")).status == SubscriptionStatus.PAST_DUE

        clock.advance(days=6)
        await updater.start()
        try:
            assert await updater.sweep_grace_periods() == 0
            clock.advance(days=1)
            assert await updater.sweep_grace_periods() == 1
            await updater.drain()
        finally:
            await updater.stop()

        assert (await store.get_subscription("globex")).status == SubscriptionStatus.CANCELED
        decision = await evaluator.check(context, "advanced-export")
        assert not decision.granted
        assert decision.reason == DenialReason.SUBSCRIPTION_LAPSED
        assert (await evaluator.check(context, "data-read")).granted

    @pytest.mark.asyncio
    async def test_repeated_sweep_cancels_once(self, store, audit, clock):
        updater = SubscriptionUpdater(
            store=store, audit=audit, settings=make_settings(), clock=clock, retry_policy=FAST_RETRY
        )
        await updater.apply(billing_event("evt-1", BillingEventType.PAYMENT_FAILED))
        clock.advance(days=8)

        await updater.sweep_grace_periods()
        await updater.sweep_grace_periods()
        await updater.start()
        try:
            await updater.drain()
        finally:
            await updater.stop()

        statuses = [t.to_status for t in await store.get_subscription_history("globex")]
        assert statuses == [SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED]


class TestOpenTrial:
    @pytest.mark.asyncio
    async def test_opens_trial(self, store, audit, clock):
        updater = SubscriptionUpdater(
            store=store, audit=audit, settings=make_settings(), clock=clock, retry_policy=FAST_RETRY
        )
        trial = await updater.open_trial("initech", PlanTier.PRO)

        assert trial.status == SubscriptionStatus.TRIALING
        assert trial.trial_ends_at == clock.now + timedelta(days=14)
        [entry] = await store.get_subscription_history("initech")
        assert entry.from_status is None
        assert entry.to_status == SubscriptionStatus.TRIALING

    @pytest.mark.asyncio
    async def test_existing_subscription_is_kept(self, store, audit, clock):
        updater = SubscriptionUpdater(
            store=store, audit=audit, settings=make_settings(), clock=clock, retry_policy=FAST_RETRY
        )
        existing = await store.get_subscription("globex")
        assert await updater.open_trial("globex") == existing
        assert await store.get_subscription_history("globex") == []

    @pytest.mark.asyncio
    async def test_trial_expires_for_gated_features(self, store, audit, clock):
        updater = SubscriptionUpdater(
            store=store, audit=audit, settings=make_settings(trial_period_days=14),
            clock=clock, retry_policy=FAST_RETRY,
        )
        evaluator = EntitlementEvaluator(
            store=store, gates=load_feature_gates(), clock=clock, retry_policy=FAST_RETRY
        )
        await updater.open_trial("initech", PlanTier.PRO)
        context = TenantContext(tenant_id="initech", user_id="user-carol")

        assert (await evaluator.check(context, "team-invites")).granted
        clock.advance(days=14)
        decision = await evaluator.check(context, "team-invites")
        assert decision.reason == DenialReason.TRIAL_EXPIRED
