"""
Fixtures for API tests.

Each test gets a fresh app wired to a seeded in-memory store. The client is
used as a context manager so the lifespan (session cache, subscription
writer) runs exactly as it does under uvicorn.
"""

import pytest
from fastapi.testclient import TestClient

from api import create_app
from api.dependencies import ServiceContainer, set_container
from modules.audit.service import InMemoryAuditSink
from modules.store.memory import InMemoryStore
from tests.conftest import TEST_PASSWORD, seed_store


@pytest.fixture
def api_env(monkeypatch):
    """Environment for the app under test; tests may add overrides before `client`."""
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("BILLING_WEBHOOK_SECRET", "whsec-test")
    monkeypatch.setenv("MAINTENANCE_INTERVAL_SECONDS", "3600")
    return monkeypatch


@pytest.fixture
def api_store() -> InMemoryStore:
    return seed_store(InMemoryStore())


@pytest.fixture
def api_audit() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def client(api_env, api_store, api_audit):
    set_container(ServiceContainer(store=api_store, audit=api_audit))
    with TestClient(create_app()) as test_client:
        yield test_client


def login(client: TestClient, login_id: str, password: str = TEST_PASSWORD):
    return client.post("/api/auth/sessions", json={"login": login_id, "password": password})


def bearer(client: TestClient, login_id: str, tenant_id: str = None) -> dict[str, str]:
    """Sign in and return request headers for the new session."""
    response = login(client, login_id)
    assert response.status_code == 201, response.text
    headers = {"Authorization": f"Bearer {response.json()['token']}"}
    if tenant_id:
        headers["X-Tenant-ID"] = tenant_id
    return headers
