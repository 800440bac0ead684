"""
Logging setup.

Services log through ``logging.getLogger(__name__)``. Two named loggers carry
events that operators route separately: ``tenantgate.security`` for
cross-tenant access and lockouts, ``tenantgate.audit`` for audit events.
"""

import logging

SECURITY_LOGGER = "tenantgate.security"
AUDIT_LOGGER = "tenantgate.audit"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger(SECURITY_LOGGER).setLevel(logging.INFO)


def token_hint(token: str) -> str:
    """Short, non-secret prefix of a token for log lines."""
    if not token:
        return "<empty>"
    return f"{token[:6]}..."
