"""
Tenants module exceptions.

These exceptions are raised by the tenants module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import AuthorizationError, ValidationError


class NoTenantMembershipError(AuthorizationError):
    """Raised when the identity has no membership in the requested (or any) tenant."""

    def __init__(self, user_id: str, tenant_id: Optional[str] = None):
        details = {"user_id": user_id}
        if tenant_id:
            details["tenant_id"] = tenant_id
            message = f"User is not a member of tenant {tenant_id}"
        else:
            message = "User does not belong to any tenant"
        super().__init__(message, code="NO_TENANT_MEMBERSHIP", details=details)


class AmbiguousTenantError(ValidationError):
    """Raised when a user belongs to several tenants and none was selected."""

    def __init__(self, tenant_ids: list[str]):
        super().__init__(
            "User belongs to several tenants; select one with the X-Tenant-ID header",
            code="AMBIGUOUS_TENANT",
            details={"tenant_ids": sorted(tenant_ids)},
        )


class TenantUnavailableError(AuthorizationError):
    """Raised when the resolved tenant is suspended or deleted."""

    def __init__(self, tenant_id: str, status: str):
        super().__init__(
            f"Tenant {tenant_id} is {status}",
            code="TENANT_UNAVAILABLE",
            details={"tenant_id": tenant_id, "status": status},
        )


class CrossTenantAccessError(AuthorizationError):
    """
    Raised when a request touches data owned by a different tenant.

    Signals a bug or an attack; it is never retried and always logged.
    """

    def __init__(self, tenant_id: str, resource_tenant_id: str):
        super().__init__(
            "Access to another tenant's data is not allowed",
            code="CROSS_TENANT_ACCESS",
            details={"tenant_id": tenant_id, "resource_tenant_id": resource_tenant_id},
        )
