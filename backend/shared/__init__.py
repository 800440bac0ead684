"""
Shared infrastructure for Tenantgate backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory (service role only)
- exceptions: Base exception classes, including the retryable store failure
- resilience: Bounded retry with jittered backoff for store calls
- clock: Injectable "now" for services
- log: Logging setup and the named security/audit loggers

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .clock import Clock, utc_now
from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    TenantgateError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    TransientStoreFailureError,
)
from .log import AUDIT_LOGGER, SECURITY_LOGGER, configure_logging
from .models import Identity
from .resilience import RetryPolicy, retry_async

__all__ = [
    "Clock",
    "utc_now",
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "TenantgateError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "TransientStoreFailureError",
    "AUDIT_LOGGER",
    "SECURITY_LOGGER",
    "configure_logging",
    "Identity",
    "RetryPolicy",
    "retry_async",
]
