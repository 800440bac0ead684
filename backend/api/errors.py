"""
Exception handlers.

Maps the TenantgateError families raised by the modules to HTTP responses.
Every error body uses the ErrorResponse envelope produced by
``TenantgateError.to_dict()``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    TenantgateError,
    TransientStoreFailureError,
    ValidationError,
)
from modules.auth.exceptions import AccountLockedError
from modules.billing.exceptions import (
    ConcurrentUpdateError,
    InvalidTransitionError,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases
STATUS_BY_ERROR: list[tuple[type[TenantgateError], int]] = [
    (AccountLockedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (WebhookVerificationError, status.HTTP_400_BAD_REQUEST),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (TransientStoreFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(exc: TenantgateError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def headers_for(exc: TenantgateError) -> dict[str, str]:
    if isinstance(exc, AccountLockedError):
        return {"Retry-After": str(max(1, exc.retry_after_seconds))}
    if isinstance(exc, TransientStoreFailureError):
        return {"Retry-After": "1"}
    if isinstance(exc, AuthenticationError):
        return {"WWW-Authenticate": "Bearer"}
    return {}


async def tenantgate_exception_handler(request: Request, exc: TenantgateError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(
        content=exc.to_dict(),
        status_code=status_code,
        headers=headers_for(exc),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # No stack traces in responses
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        content={"error": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenantgateError, tenantgate_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
