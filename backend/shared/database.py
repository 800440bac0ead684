"""
Supabase client for the store and the audit sink.

Tenantgate owns its tables outright: users, sessions, tenants, memberships,
subscriptions and audit events are only ever touched by the gateway, and
cross-tenant isolation is checked by TenantResolver on every request. The
process therefore holds a single service-role client shared by
SupabaseStore and SupabaseAuditSink; no per-user clients exist.
"""

import logging
from typing import Optional
from supabase import create_client, Client

from .config import get_settings

logger = logging.getLogger(__name__)

_service_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Return the process-wide service-role client, creating it on first use.

    Only called when ``STORE_BACKEND=supabase``; the in-memory backend never
    needs credentials.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    global _service_client

    if _service_client is None:
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "Supabase configuration missing. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY, or use STORE_BACKEND=memory."
            )
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )
        logger.info(f"Connected store client to {settings.supabase_url}")

    return _service_client


def reset_client_cache() -> None:
    """Drop the shared client so the next call rebuilds it from current settings."""
    global _service_client
    _service_client = None
