"""
Inbound billing webhook verification and parsing.

The payment provider signs the raw request body with HMAC-SHA256 using the
shared ``billing_webhook_secret`` and sends the hex digest in the
``X-Billing-Signature`` header.
"""

import hashlib
import hmac
import json
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from shared.exceptions import ValidationError

from .exceptions import WebhookVerificationError
from .models import BillingEvent

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Billing-Signature"


def build_signature(secret: str, payload: bytes) -> str:
    """Compute the HMAC-SHA256 hex signature of a payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(secret: str, payload: bytes, signature: Optional[str]) -> None:
    """
    Check a webhook signature in constant time.

    Raises:
        WebhookVerificationError: If the secret is unset, the header is
            missing, or the signature does not match
    """
    if not secret or not signature:
        raise WebhookVerificationError()
    expected = build_signature(secret, payload)
    if not hmac.compare_digest(expected, signature.strip().lower()):
        raise WebhookVerificationError()


def parse_event(payload: bytes) -> BillingEvent:
    """
    Parse a verified webhook body into a BillingEvent.

    Raises:
        ValidationError: If the body is not a valid event
    """
    try:
        data = json.loads(payload)
        return BillingEvent.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        logger.warning(f"Rejected malformed billing webhook: {e}")
        raise ValidationError(
            "Malformed billing event",
            code="MALFORMED_BILLING_EVENT",
        ) from e
