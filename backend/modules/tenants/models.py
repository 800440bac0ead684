"""
Tenants module data models.

A tenant is an isolated customer organization. Users reach tenants only
through memberships, and every request runs against exactly one resolved
TenantContext.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TenantStatus(str, Enum):
    """Lifecycle status of a tenant."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class Tenant(BaseModel):
    """A customer organization."""

    id: str = Field(..., description="Tenant ID")
    name: str = Field(default="", description="Display name")
    status: TenantStatus = Field(default=TenantStatus.ACTIVE)


class TenantMembership(BaseModel):
    """Links a user to a tenant."""

    user_id: str = Field(..., description="User ID")
    tenant_id: str = Field(..., description="Tenant ID")
    role: str = Field(default="member", description="Role inside the tenant")


class TenantContext(BaseModel):
    """
    The tenant resolved for the current request.

    Every tenant-scoped read or write is checked against ``tenant_id``.
    """

    tenant_id: str = Field(..., description="Resolved tenant ID")
    user_id: str = Field(..., description="Requesting user ID")
    role: str = Field(default="member", description="User's role in the tenant")
    tenant_name: Optional[str] = Field(None, description="Tenant display name")

    model_config = {"frozen": True}


class TenantResponse(BaseModel):
    """API response describing a tenant the caller may access."""

    id: str
    name: str
    status: TenantStatus
    role: str
