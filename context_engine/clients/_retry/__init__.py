"""Retry helpers for transient errors talking to the remote backend.

Private submodule - not exported by the package.

HTTPX Exception Hierarchy
=========================

Reference for which exceptions to retry vs propagate::

    httpx.HTTPError (base)
    ├── httpx.RequestError
    │   ├── httpx.TransportError
    │   │   ├── httpx.TimeoutException   ← RETRY (all subclasses)
    │   │   ├── httpx.NetworkError       ← RETRY (all subclasses)
    │   │   ├── httpx.ProtocolError
    │   │   │   ├── LocalProtocolError   ← PROPAGATE (our bug)
    │   │   │   └── RemoteProtocolError  ← RETRY (server sent invalid HTTP)
    │   │   ├── ProxyError               ← PROPAGATE (config error)
    │   │   └── UnsupportedProtocol      ← PROPAGATE (config error)
    │   ├── DecodingError                ← PROPAGATE (response malformed)
    │   └── TooManyRedirects             ← PROPAGATE (config/server error)
    └── httpx.InvalidURL                 ← PROPAGATE (config error)

Backend status codes
--------------------
- 502/503/504 ← RETRY (gateway or overload, transient)
- everything else, 500 included ← PROPAGATE

Anything else is retried only when its message names a transient condition
(timeout, connection, network, temporary).
"""

from __future__ import annotations

from context_engine.clients._retry.backend import (
    RETRY_ATTEMPTS,
    backend_retrying,
    is_retryable_backend_error,
    log_backend_retry,
)

__all__ = [
    'RETRY_ATTEMPTS',
    'backend_retrying',
    'is_retryable_backend_error',
    'log_backend_retry',
]
