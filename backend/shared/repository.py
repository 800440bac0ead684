"""
Base repository class for database access.

Provides a common abstraction layer for Supabase-backed repositories:
client access, running the synchronous client off the event loop, and
translating connection-level failures into TransientStoreFailureError.
"""

import asyncio
from typing import Any, Callable, Generic, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from .exceptions import TransientStoreFailureError


T = TypeVar("T")

# PostgREST/Postgres codes that indicate a retryable condition
# (connection failures, serialization conflicts, lock timeouts).
_TRANSIENT_PG_CODES = {"08000", "08003", "08006", "40001", "40P01", "55P03", "57014"}


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - ``_run`` to execute a query builder in a worker thread

    Subclasses implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class TenantRepository(BaseRepository[Tenant]):
            async def get_by_id(self, tenant_id: str) -> Optional[Tenant]:
                result = await self._run(
                    "get_tenant",
                    lambda: self._db.table("tenants").select("*").eq("id", tenant_id).execute(),
                )
                if not result.data:
                    return None
                return Tenant(**result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    async def _run(self, operation: str, query: Callable[[], Any]) -> Any:
        """
        Execute a blocking Supabase call without blocking the event loop.

        Raises:
            TransientStoreFailureError: On network errors or retryable database codes
        """
        try:
            return await asyncio.to_thread(query)
        except httpx.HTTPError as e:
            raise TransientStoreFailureError(operation, str(e)) from e
        except APIError as e:
            if e.code in _TRANSIENT_PG_CODES:
                raise TransientStoreFailureError(operation, e.message or str(e)) from e
            raise
