"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import pytest
from datetime import datetime, timedelta, timezone

from api.dependencies import reset_container
from modules.audit.service import InMemoryAuditSink
from modules.auth.session_cache import SessionCache, teardown_session_cache
from modules.billing.models import PlanTier, Subscription, SubscriptionStatus
from modules.store.memory import InMemoryStore
from modules.tenants.models import Tenant, TenantStatus
from shared.config import Settings, get_settings
from shared.resilience import RetryPolicy


TEST_PASSWORD = "correct horse battery staple"
FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# No backoff so transient-failure tests stay fast
FAST_RETRY = RetryPolicy(max_attempts=3, backoff_ms=0, timeout_seconds=1.0)


class FakeClock:
    """Settable clock; call it to read the time."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "billing_webhook_secret": "whsec-test",
        "session_cache_ttl_seconds": 60,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def seed_store(store: InMemoryStore) -> InMemoryStore:
    """
    Standard fixture data:

    - alice: member of acme (free/active subscription)
    - bob: member of acme and globex (pro/active)
    - carol: member of initech (suspended tenant)
    - dave: no memberships
    """
    store.add_user("user-alice", "alice@example.com", TEST_PASSWORD)
    store.add_user("user-bob", "bob@example.com", TEST_PASSWORD)
    store.add_user("user-carol", "carol@example.com", TEST_PASSWORD)
    store.add_user("user-dave", "dave@example.com", TEST_PASSWORD)

    store.add_tenant(Tenant(id="acme", name="Acme Corp"))
    store.add_tenant(Tenant(id="globex", name="Globex"))
    store.add_tenant(Tenant(id="initech", name="Initech", status=TenantStatus.SUSPENDED))

    store.add_membership("user-alice", "acme", role="owner")
    store.add_membership("user-bob", "acme")
    store.add_membership("user-bob", "globex", role="admin")
    store.add_membership("user-carol", "initech")

    store.put_subscription(Subscription(tenant_id="acme", plan_tier=PlanTier.FREE))
    store.put_subscription(
        Subscription(
            tenant_id="globex",
            plan_tier=PlanTier.PRO,
            status=SubscriptionStatus.ACTIVE,
            renewal_at=FIXED_NOW + timedelta(days=20),
        )
    )
    return store


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached settings, the service container and the session cache around each test."""
    get_settings.cache_clear()
    reset_container()
    teardown_session_cache()
    yield
    get_settings.cache_clear()
    reset_container()
    teardown_session_cache()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return seed_store(InMemoryStore())


@pytest.fixture
def audit() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def session_cache() -> SessionCache:
    cache = SessionCache(ttl_seconds=60, max_entries=100)
    cache.initialize()
    yield cache
    cache.teardown()
