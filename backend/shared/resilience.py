"""
Retry helpers for calls into the persistence collaborator.

Only transient failures are retried; everything else propagates on the
first attempt so terminal errors reach the caller unchanged.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .config import get_settings
from .exceptions import TransientStoreFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy: attempt count, base backoff and per-attempt timeout."""

    max_attempts: int = 3
    backoff_ms: int = 100
    timeout_seconds: float = 5.0


def default_retry_policy() -> RetryPolicy:
    """Build the retry policy from settings."""
    settings = get_settings()
    return RetryPolicy(
        max_attempts=settings.store_retry_attempts,
        backoff_ms=settings.store_retry_backoff_ms,
        timeout_seconds=settings.store_timeout_seconds,
    )


def _default_retryable(exc: Exception) -> bool:
    return isinstance(exc, TransientStoreFailureError)


async def retry_async(
    func: Callable[[], Awaitable[Any]],
    *,
    operation: str,
    policy: Optional[RetryPolicy] = None,
    retryable: Optional[Callable[[Exception], bool]] = None,
) -> Any:
    """
    Run ``func`` with a per-attempt timeout and jittered exponential backoff.

    A timeout is converted into TransientStoreFailureError so callers see a
    single retryable error kind. After the last attempt the error is re-raised.

    Args:
        func: Zero-argument coroutine factory to call on each attempt
        operation: Name used in logs and error details
        policy: Retry policy (defaults to the configured one)
        retryable: Predicate deciding whether an error is worth retrying

    Returns:
        Whatever ``func`` returns
    """
    policy = policy or default_retry_policy()
    retryable = retryable or _default_retryable
    attempt = 1
    while True:
        try:
            return await asyncio.wait_for(func(), timeout=policy.timeout_seconds)
        except asyncio.TimeoutError:
            error: Exception = TransientStoreFailureError(operation, "timed out")
        except Exception as exc:
            error = exc

        if attempt >= max(policy.max_attempts, 1) or not retryable(error):
            raise error

        sleep_s = (policy.backoff_ms / 1000.0) * (2 ** (attempt - 1)) * random.uniform(0.5, 1.5)
        logger.debug(
            f"Retrying {operation} after attempt {attempt} failed: {error} "
            f"(sleeping {sleep_s:.3f}s)"
        )
        await asyncio.sleep(sleep_s)
        attempt += 1
