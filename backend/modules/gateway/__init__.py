"""
Gateway module.

Composes authentication, tenant resolution and entitlement checks into
the per-request pipeline.

Public API:
- Gateway: authenticate, authorize_request, check
"""

from .service import Gateway

__all__ = ["Gateway"]
