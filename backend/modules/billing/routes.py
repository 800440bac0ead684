"""
Billing webhook endpoint.

The payment provider posts subscription events here. The body is verified
against its HMAC signature before parsing and then queued for the single
subscription writer; the response does not wait for the event to apply.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request, status
from typing import Optional

from api.dependencies import get_subscription_updater
from api.models.errors import ErrorResponse
from shared.config import get_settings
from shared.log import SECURITY_LOGGER

from .exceptions import WebhookVerificationError
from .models import WebhookAck
from .service import SubscriptionUpdater
from .webhooks import SIGNATURE_HEADER, parse_event, verify_signature

logger = logging.getLogger(__name__)
security_logger = logging.getLogger(SECURITY_LOGGER)

router = APIRouter()


@router.post(
    "/billing",
    response_model=WebhookAck,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": ErrorResponse, "description": "Bad signature or malformed event"}},
)
async def receive_billing_webhook(
    request: Request,
    signature: Optional[str] = Header(default=None, alias=SIGNATURE_HEADER),
    updater: SubscriptionUpdater = Depends(get_subscription_updater),
) -> WebhookAck:
    payload = await request.body()
    try:
        verify_signature(get_settings().billing_webhook_secret, payload, signature)
    except WebhookVerificationError:
        client = request.client.host if request.client else "unknown"
        security_logger.warning(f"Rejected billing webhook with bad signature from {client}")
        raise

    event = parse_event(payload)
    await updater.submit(event)
    logger.info(f"Accepted billing event {event.event_id} for tenant {event.tenant_id}")
    return WebhookAck(event_id=event.event_id)
