"""
Audit sink implementations.

- LoggingAuditSink: writes events to the ``tenantgate.audit`` logger
- InMemoryAuditSink: keeps events in a list (tests and development)
- SupabaseAuditSink: queues events and inserts them into ``audit_events``
  from a background task, retrying transient failures
"""

import asyncio
import json
import logging
from typing import Optional

from shared.log import AUDIT_LOGGER
from shared.repository import BaseRepository
from shared.resilience import RetryPolicy, retry_async

from .interfaces import IAuditSink
from .models import AuditEvent

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER)


def _serialize(event: AuditEvent) -> str:
    return json.dumps(event.model_dump(mode="json"), sort_keys=True)


class LoggingAuditSink(IAuditSink):
    """Writes each event as one JSON log line."""

    def emit(self, event: AuditEvent) -> None:
        audit_logger.info(_serialize(event))


class InMemoryAuditSink(IAuditSink):
    """Collects events in memory. Useful for tests and local development."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


class SupabaseAuditSink(BaseRepository[AuditEvent], IAuditSink):
    """
    Background delivery of audit events into Supabase.

    ``emit`` only enqueues. A worker started with ``start()`` drains the
    queue; events that still fail after retries are written to the audit
    log so nothing is dropped silently.
    """

    TABLE = "audit_events"

    def __init__(self, db, retry_policy: Optional[RetryPolicy] = None, max_queue: int = 10_000):
        super().__init__(db)
        self._queue: asyncio.Queue[AuditEvent] = asyncio.Queue(maxsize=max_queue)
        self._retry_policy = retry_policy
        self._worker: Optional[asyncio.Task] = None

    def emit(self, event: AuditEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.error("Audit queue full; writing event to audit log instead")
            audit_logger.warning(_serialize(event))

    async def start(self) -> None:
        if self._worker is None:
            self._worker = asyncio.create_task(self._drain(), name="audit-sink")

    async def stop(self) -> None:
        """Flush pending events, then stop the worker."""
        if self._worker is None:
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            except Exception:
                logger.exception(f"Failed to deliver audit event {event.id}")
                audit_logger.warning(_serialize(event))
            finally:
                self._queue.task_done()

    async def _deliver(self, event: AuditEvent) -> None:
        row = event.model_dump(mode="json")
        await retry_async(
            lambda: self._run(
                "insert_audit_event",
                lambda: self._db.table(self.TABLE).upsert(row, on_conflict="id").execute(),
            ),
            operation="insert_audit_event",
            policy=self._retry_policy,
        )
