"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

When we're ready to extract a module to a microservice, we only need
to change the implementation here to an HTTP client.
"""

from typing import TYPE_CHECKING

from shared.config import get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.audit.interfaces import IAuditSink
    from modules.auth.service import AuthService
    from modules.billing.service import SubscriptionUpdater
    from modules.entitlements.service import EntitlementEvaluator
    from modules.gateway.service import Gateway
    from modules.store.interfaces import IStore
    from modules.tenants.service import TenantResolver


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(
        self,
        store: "IStore | None" = None,
        audit: "IAuditSink | None" = None,
    ) -> None:
        self._store: "IStore | None" = store
        self._audit: "IAuditSink | None" = audit
        self._auth_service: "AuthService | None" = None
        self._tenant_resolver: "TenantResolver | None" = None
        self._entitlement_evaluator: "EntitlementEvaluator | None" = None
        self._subscription_updater: "SubscriptionUpdater | None" = None
        self._gateway: "Gateway | None" = None

    @property
    def store(self) -> "IStore":
        """Get the persistence collaborator."""
        if self._store is None:
            settings = get_settings()
            if settings.store_backend == "supabase":
                from modules.store.supabase_store import SupabaseStore
                from shared.database import get_supabase_client
                self._store = SupabaseStore(get_supabase_client())
            else:
                from modules.store.memory import InMemoryStore
                self._store = InMemoryStore()
        return self._store

    @property
    def audit(self) -> "IAuditSink":
        """Get the audit sink."""
        if self._audit is None:
            settings = get_settings()
            if settings.store_backend == "supabase":
                from modules.audit.service import SupabaseAuditSink
                from shared.database import get_supabase_client
                self._audit = SupabaseAuditSink(get_supabase_client())
            else:
                from modules.audit.service import LoggingAuditSink
                self._audit = LoggingAuditSink()
        return self._audit

    @property
    def auth(self) -> "AuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(store=self.store, audit=self.audit)
        return self._auth_service

    @property
    def tenants(self) -> "TenantResolver":
        """Get the tenant resolver instance."""
        if self._tenant_resolver is None:
            from modules.tenants.service import TenantResolver
            self._tenant_resolver = TenantResolver(store=self.store, audit=self.audit)
        return self._tenant_resolver

    @property
    def entitlements(self) -> "EntitlementEvaluator":
        """Get the entitlement evaluator instance."""
        if self._entitlement_evaluator is None:
            from modules.entitlements.gates import load_feature_gates
            from modules.entitlements.service import EntitlementEvaluator
            settings = get_settings()
            gates = load_feature_gates(settings.feature_gates_path, settings.read_only_features)
            self._entitlement_evaluator = EntitlementEvaluator(store=self.store, gates=gates)
        return self._entitlement_evaluator

    @property
    def subscriptions(self) -> "SubscriptionUpdater":
        """Get the subscription updater instance."""
        if self._subscription_updater is None:
            from modules.billing.service import SubscriptionUpdater
            self._subscription_updater = SubscriptionUpdater(store=self.store, audit=self.audit)
        return self._subscription_updater

    @property
    def gateway(self) -> "Gateway":
        """Get the request gateway."""
        if self._gateway is None:
            from modules.gateway.service import Gateway
            self._gateway = Gateway(
                auth=self.auth,
                tenants=self.tenants,
                entitlements=self.entitlements,
            )
        return self._gateway

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._store = None
        self._audit = None
        self._auth_service = None
        self._tenant_resolver = None
        self._entitlement_evaluator = None
        self._subscription_updater = None
        self._gateway = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> ServiceContainer:
    """Install a pre-built container (tests, embedding)."""
    global _container
    _container = container
    return container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_gateway() -> "Gateway":
    """FastAPI dependency for the request gateway."""
    return get_container().gateway


def get_tenant_resolver() -> "TenantResolver":
    """FastAPI dependency for the tenant resolver."""
    return get_container().tenants


def get_subscription_updater() -> "SubscriptionUpdater":
    """FastAPI dependency for the subscription updater."""
    return get_container().subscriptions


def get_store() -> "IStore":
    """FastAPI dependency for the persistence collaborator."""
    return get_container().store
