"""
Tests for the in-memory store.

The service tests exercise the store indirectly; these pin down the
persistence contract itself (revocation, compare-and-set, idempotency).
"""

import asyncio
import pytest
from datetime import timedelta

from modules.auth.models import Session
from modules.auth.passwords import verify_password
from modules.billing.exceptions import ConcurrentUpdateError, SubscriptionNotFoundError
from modules.billing.models import (
    PlanTier,
    Subscription,
    SubscriptionStatus,
    SubscriptionTransition,
)
from modules.store.interfaces import IStore
from modules.store.memory import InMemoryStore
from tests.conftest import FIXED_NOW, TEST_PASSWORD


def make_session(token: str = "tok-1", expires_in: timedelta = timedelta(hours=1)) -> Session:
    return Session(
        token=token,
        user_id="user-alice",
        login="alice@example.com",
        created_at=FIXED_NOW,
        expires_at=FIXED_NOW + expires_in,
    )


def transition_for(sub: Subscription, event_id: str = "evt-1") -> SubscriptionTransition:
    return SubscriptionTransition(
        tenant_id=sub.tenant_id,
        from_status=SubscriptionStatus.ACTIVE,
        to_status=sub.status,
        from_tier=PlanTier.FREE,
        to_tier=sub.plan_tier,
        event_id=event_id,
        occurred_at=FIXED_NOW,
        version=sub.version,
    )


class TestSeeding:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, IStore)

    @pytest.mark.asyncio
    async def test_login_lookup_is_case_insensitive(self, store):
        user = await store.get_user_by_login("  ALICE@Example.com ")
        assert user.id == "user-alice"

    @pytest.mark.asyncio
    async def test_passwords_are_hashed(self, store):
        user = await store.get_user("user-alice")
        assert user.password_hash != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, user.password_hash)

    @pytest.mark.asyncio
    async def test_memberships(self, store):
        memberships = await store.get_tenant_memberships("user-bob")
        assert sorted(m.tenant_id for m in memberships) == ["acme", "globex"]
        assert await store.get_tenant_memberships("user-dave") == []

    @pytest.mark.asyncio
    async def test_unknown_records(self, store):
        assert await store.get_user("nobody") is None
        assert await store.get_tenant("nowhere") is None
        assert await store.get_subscription("initech") is None


class TestSessions:
    @pytest.mark.asyncio
    async def test_save_and_get(self):
        store = InMemoryStore()
        await store.save_session(make_session())
        session = await store.get_session("tok-1")
        assert session.user_id == "user-alice"
        assert not session.revoked

    @pytest.mark.asyncio
    async def test_revoke_sets_flag_once(self):
        store = InMemoryStore()
        await store.save_session(make_session())

        revoked = await store.revoke_session("tok-1", FIXED_NOW)
        again = await store.revoke_session("tok-1", FIXED_NOW + timedelta(minutes=5))

        assert revoked.revoked
        assert again.revoked_at == FIXED_NOW

    @pytest.mark.asyncio
    async def test_revoke_unknown_token(self):
        assert await InMemoryStore().revoke_session("missing", FIXED_NOW) is None

    @pytest.mark.asyncio
    async def test_delete_expired(self):
        store = InMemoryStore()
        await store.save_session(make_session("old", timedelta(minutes=-1)))
        await store.save_session(make_session("edge", timedelta(0)))
        await store.save_session(make_session("fresh"))

        assert await store.delete_expired_sessions(FIXED_NOW) == 2
        assert await store.get_session("fresh") is not None
        assert await store.get_session("edge") is None


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_compare_and_set(self, store):
        current = await store.get_subscription("acme")
        updated = current.model_copy(update={"plan_tier": PlanTier.PRO, "version": 2})

        await store.update_subscription_status(updated, 1, transition_for(updated))

        assert (await store.get_subscription("acme")).version == 2
        assert len(await store.get_subscription_history("acme")) == 1
        assert await store.is_event_processed("evt-1")

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, store):
        current = await store.get_subscription("acme")
        updated = current.model_copy(update={"version": 2})

        with pytest.raises(ConcurrentUpdateError):
            await store.update_subscription_status(updated, 7, transition_for(updated))

        assert (await store.get_subscription("acme")).version == 1
        assert await store.get_subscription_history("acme") == []
        assert not await store.is_event_processed("evt-1")

    @pytest.mark.asyncio
    async def test_missing_subscription(self, store):
        sub = Subscription(tenant_id="initech", version=2)
        with pytest.raises(SubscriptionNotFoundError):
            await store.update_subscription_status(sub, 1, transition_for(sub))

    @pytest.mark.asyncio
    async def test_only_one_of_two_racing_writers_wins(self, store):
        current = await store.get_subscription("acme")
        first = current.model_copy(update={"plan_tier": PlanTier.PRO, "version": 2})
        second = current.model_copy(update={"plan_tier": PlanTier.ENTERPRISE, "version": 2})

        results = await asyncio.gather(
            store.update_subscription_status(first, 1, transition_for(first, "evt-a")),
            store.update_subscription_status(second, 1, transition_for(second, "evt-b")),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConcurrentUpdateError) for r in results) == 1
        assert len(await store.get_subscription_history("acme")) == 1

    @pytest.mark.asyncio
    async def test_processed_event_is_not_written_again(self, store):
        current = await store.get_subscription("acme")
        first = current.model_copy(update={"plan_tier": PlanTier.PRO, "version": 2})
        await store.update_subscription_status(first, 1, transition_for(first, "evt-a"))

        again = first.model_copy(update={"plan_tier": PlanTier.ENTERPRISE, "version": 3})
        assert await store.update_subscription_status(again, 2, transition_for(again, "evt-a")) is None

        assert (await store.get_subscription("acme")).plan_tier == PlanTier.PRO
        assert len(await store.get_subscription_history("acme")) == 1

    @pytest.mark.asyncio
    async def test_recorded_noop_event_blocks_later_write(self, store):
        await store.record_event_id("evt-a")
        current = await store.get_subscription("acme")
        updated = current.model_copy(update={"plan_tier": PlanTier.PRO, "version": 2})

        assert await store.update_subscription_status(updated, 1, transition_for(updated, "evt-a")) is None
        assert (await store.get_subscription("acme")).version == 1

    @pytest.mark.asyncio
    async def test_create_subscription_once(self, store):
        sub = Subscription(
            tenant_id="initech",
            plan_tier=PlanTier.PRO,
            status=SubscriptionStatus.TRIALING,
        )
        transition = SubscriptionTransition(
            tenant_id="initech",
            to_status=SubscriptionStatus.TRIALING,
            to_tier=PlanTier.PRO,
            occurred_at=FIXED_NOW,
            version=1,
        )

        assert await store.create_subscription(sub, transition) == sub
        assert await store.create_subscription(sub, transition) is None
        assert len(await store.get_subscription_history("initech")) == 1

    @pytest.mark.asyncio
    async def test_list_by_status(self, store):
        active = await store.list_subscriptions(SubscriptionStatus.ACTIVE)
        assert sorted(s.tenant_id for s in active) == ["acme", "globex"]
        assert await store.list_subscriptions(SubscriptionStatus.PAST_DUE) == []


class TestEventIds:
    @pytest.mark.asyncio
    async def test_record_event_id_is_first_writer_wins(self):
        store = InMemoryStore()
        assert await store.record_event_id("evt-1") is True
        assert await store.record_event_id("evt-1") is False
        assert await store.is_event_processed("evt-1")
