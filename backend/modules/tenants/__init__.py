"""
Tenants module.

Resolves the tenant each request runs in and enforces tenant isolation.

Public API:
- ITenantResolver: Interface for tenant resolution
- Tenant, TenantStatus, TenantMembership, TenantContext: Tenant models
- Tenant exceptions: NoTenantMembershipError, CrossTenantAccessError, etc.
"""

from .interfaces import ITenantResolver
from .models import Tenant, TenantStatus, TenantMembership, TenantContext, TenantResponse
from .exceptions import (
    NoTenantMembershipError,
    AmbiguousTenantError,
    TenantUnavailableError,
    CrossTenantAccessError,
)

__all__ = [
    # Interface
    "ITenantResolver",
    # Models
    "Tenant",
    "TenantStatus",
    "TenantMembership",
    "TenantContext",
    "TenantResponse",
    # Exceptions
    "NoTenantMembershipError",
    "AmbiguousTenantError",
    "TenantUnavailableError",
    "CrossTenantAccessError",
]
