"""
Store module.

The persistence collaborator the gateway reads users, tenants and
subscriptions from, and writes sessions and subscription transitions to.

Public API:
- IStore: Interface for persistence operations
- InMemoryStore: Dictionary-backed implementation (tests, development)
- SupabaseStore: Supabase/Postgres implementation (production)
"""

from .interfaces import IStore
from .memory import InMemoryStore
from .supabase_store import SupabaseStore

__all__ = [
    "IStore",
    "InMemoryStore",
    "SupabaseStore",
]
