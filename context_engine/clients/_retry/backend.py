"""Backend-specific retry helpers.

Private module - import from _retry package.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
import tenacity

from context_engine.exceptions import BackendStatusError

__all__ = [
    'RETRY_ATTEMPTS',
    'RETRYABLE_STATUS_CODES',
    'TRANSIENT_TRANSPORT_ERRORS',
    'backend_retrying',
    'is_retryable_backend_error',
    'log_backend_retry',
]

logger = logging.getLogger(__name__)

RETRY_ATTEMPTS = 3

# 502: Bad gateway, 503: Service unavailable, 504: Gateway timeout
RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})

# Lowercased message fragments that mark an otherwise unknown error as transient
TRANSIENT_MESSAGE_MARKERS = ('timeout', 'connection', 'network', 'temporary')

# Transport failures worth another attempt. LocalProtocolError, ProxyError and
# UnsupportedProtocol signal a client or config problem and propagate.
TRANSIENT_TRANSPORT_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)

type SleepFn = Callable[[float], Awaitable[None]]


def is_retryable_backend_error(exc: BaseException) -> bool:
    """Check if a backend call failure is worth retrying.

    Retries on:
    - httpx transport errors (timeout, network issues, remote protocol errors)
    - HTTP 502/503/504
    - any other error whose message mentions a timeout, connection, network
      or temporary condition
    """
    if isinstance(exc, TRANSIENT_TRANSPORT_ERRORS):
        return True

    # Status decides for HTTP errors; the body text is not inspected
    if isinstance(exc, BackendStatusError):
        return exc.status_code in RETRYABLE_STATUS_CODES

    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


def log_backend_retry(retry_state: tenacity.RetryCallState) -> None:
    """Log backend retry attempt with exception details and the upcoming delay."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if exc is None:
        return

    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f'[RETRY] Backend attempt {retry_state.attempt_number}/{RETRY_ATTEMPTS} failed: '
        f'{type(exc).__name__}: {exc}; retrying in {delay:.1f}s'
    )


def backend_retrying(base_delay: float, *, sleep: SleepFn = asyncio.sleep) -> tenacity.AsyncRetrying:
    """Retry controller for one backend call.

    Waits base_delay * 2^(attempt-1) seconds before each retry, up to
    RETRY_ATTEMPTS attempts in total, then re-raises the last error.
    """
    return tenacity.AsyncRetrying(
        retry=tenacity.retry_if_exception(is_retryable_backend_error),
        stop=tenacity.stop_after_attempt(RETRY_ATTEMPTS),
        wait=tenacity.wait_exponential(multiplier=base_delay),
        before_sleep=log_backend_retry,
        sleep=sleep,
        reraise=True,
    )
