"""
Error response models.

Standardized error responses for the API.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format (see TenantgateError.to_dict)."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] = Field(default_factory=dict)


# Documented on routes via responses=...
AUTH_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing, invalid, revoked or expired session"},
    503: {"model": ErrorResponse, "description": "Store temporarily unavailable"},
}

TENANT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    **AUTH_ERROR_RESPONSES,
    400: {"model": ErrorResponse, "description": "Several tenants and no X-Tenant-ID header"},
    403: {"model": ErrorResponse, "description": "No membership, tenant unavailable or cross-tenant access"},
}
