"""
Audit module interface.

Producers (auth, tenants, billing) depend on IAuditSink only. Emitting is
fire-and-forget: it must never block or fail the request that produced it.
"""

from typing import Protocol, runtime_checkable

from .models import AuditEvent


@runtime_checkable
class IAuditSink(Protocol):
    """Append-only destination for audit events."""

    def emit(self, event: AuditEvent) -> None:
        """
        Hand an event to the sink.

        Delivery is at-least-once; consumers tolerate duplicates by ``event.id``.
        """
        ...
