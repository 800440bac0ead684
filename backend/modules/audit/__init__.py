"""
Audit module.

Append-only stream of security-relevant events (sign-ins, lockouts,
revocations, cross-tenant access, subscription changes).

Public API:
- IAuditSink: Interface producers emit through
- AuditEvent, AuditEventType, AuditOutcome: Event model
- LoggingAuditSink, InMemoryAuditSink, SupabaseAuditSink: Implementations
"""

from .interfaces import IAuditSink
from .models import AuditEvent, AuditEventType, AuditOutcome
from .service import LoggingAuditSink, InMemoryAuditSink, SupabaseAuditSink

__all__ = [
    # Interface
    "IAuditSink",
    # Models
    "AuditEvent",
    "AuditEventType",
    "AuditOutcome",
    # Implementations
    "LoggingAuditSink",
    "InMemoryAuditSink",
    "SupabaseAuditSink",
]
