"""
Audit module data models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
import uuid

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Kinds of security-relevant events the gateway records."""

    LOGIN_SUCCEEDED = "auth.login_succeeded"
    LOGIN_FAILED = "auth.login_failed"
    LOGIN_LOCKED = "auth.login_locked"
    SESSION_REVOKED = "auth.session_revoked"
    CROSS_TENANT_ACCESS = "tenant.cross_tenant_access"
    SUBSCRIPTION_CHANGED = "billing.subscription_changed"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"


class AuditEvent(BaseModel):
    """
    One entry in the append-only audit stream.

    ``id`` is generated once per event so downstream consumers can
    de-duplicate redeliveries.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: AuditEventType
    outcome: AuditOutcome
    occurred_at: datetime
    user_id: Optional[str] = None
    login: Optional[str] = None
    tenant_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}
