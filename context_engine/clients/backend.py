"""Remote semantic-search backend client.

Thin wrapper around the backend's upload and retrieval endpoints. Handles API
calls only - batching, registry bookkeeping and status live in the service
layer.

Endpoints:
- POST /batch-upload: {"blobs": [{"path", "content"}]} -> {"blob_names": [...]}
- POST /agents/codebase-retrieval: information request over a blob set
  -> {"formatted_retrieval": str}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx

from context_engine.clients import _retry
from context_engine.exceptions import BackendResponseError, BackendStatusError
from context_engine.schemas.blobs import Blob

__all__ = [
    'BackendClient',
    'BackendClientFactory',
    'create_backend_client',
]

logger = logging.getLogger(__name__)

# (base_url, token, timeout_seconds) -> client
type BackendClientFactory = Callable[[str, str, float], BackendClient]


class BackendClient:
    """Low-level async client for the remote backend.

    Every call is retried on transient failures (see _retry). Non-success
    statuses raise BackendStatusError, malformed payloads BackendResponseError.
    """

    UPLOAD_PATH = '/batch-upload'
    RETRIEVAL_PATH = '/agents/codebase-retrieval'

    # Base delays for exponential backoff between attempts
    UPLOAD_RETRY_BASE_SECONDS = 1.0
    RETRIEVAL_RETRY_BASE_SECONDS = 2.0

    DEFAULT_TIMEOUT_SECONDS = 60.0

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Backend root, already validated (scheme and host present).
            token: Bearer token.
            timeout_seconds: Per-request timeout.
            transport: Optional transport override (httpx.MockTransport in tests).
            sleep: Backoff sleep, injectable so tests do not wait.
        """
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip('/'),
            headers={
                'Authorization': f'Bearer {token}',
                'Content-Type': 'application/json',
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def upload_batch(self, blobs: Sequence[Blob]) -> Sequence[str]:
        """Upload one batch of blobs.

        Returns:
            Blob names assigned by the backend, never empty.

        Raises:
            BackendStatusError: Non-success status after retries.
            BackendResponseError: Response without any string entry in blob_names.
            httpx.HTTPError: Transport failure after retries.
        """
        body = {'blobs': [blob.model_dump() for blob in blobs]}
        retrying = _retry.backend_retrying(self.UPLOAD_RETRY_BASE_SECONDS, sleep=self._sleep)
        data = await retrying(self._post_json, self.UPLOAD_PATH, body)

        raw_names = data.get('blob_names')
        # Non-string entries are dropped; the batch fails only when nothing usable is left
        blob_names = [name for name in raw_names if isinstance(name, str)] if isinstance(raw_names, list) else []
        if not blob_names:
            raise BackendResponseError('Backend response carried no blob_names')
        if len(blob_names) < len(raw_names):
            logger.warning(f'[UPLOAD] Dropped {len(raw_names) - len(blob_names)} non-string blob_names entries')
        return blob_names

    async def retrieve(self, query: str, blob_names: Sequence[str]) -> str:
        """Run one retrieval request against the given blob set.

        Returns:
            The formatted retrieval text, possibly empty.

        Raises:
            BackendStatusError: Non-success status after retries.
            BackendResponseError: Response is not a JSON object or the text is not a string.
            httpx.HTTPError: Transport failure after retries.
        """
        body = {
            'information_request': query,
            'blobs': {
                'checkpoint_id': None,
                'added_blobs': list(blob_names),
                'deleted_blobs': [],
            },
            'dialog': [],
            'max_output_length': 0,
            'disable_codebase_retrieval': False,
            'enable_commit_retrieval': False,
        }
        retrying = _retry.backend_retrying(self.RETRIEVAL_RETRY_BASE_SECONDS, sleep=self._sleep)
        data = await retrying(self._post_json, self.RETRIEVAL_PATH, body)

        formatted = data.get('formatted_retrieval') or ''
        if not isinstance(formatted, str):
            raise BackendResponseError('Backend formatted_retrieval must be a string')
        return formatted

    async def _post_json(  # strict_typing_linter.py: loose-typing
        self,
        path: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON object. One attempt."""
        response = await self._client.post(path, json=body)
        logger.debug(f'[HTTP] POST {path} -> {response.status_code}')
        if not response.is_success:
            raise BackendStatusError(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as e:
            raise BackendResponseError(f'Backend response is not valid JSON: {e}') from e
        if not isinstance(data, dict):
            raise BackendResponseError(f'Backend response must be a JSON object, got {type(data).__name__}')
        return data

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> BackendClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()


def create_backend_client(base_url: str, token: str, timeout_seconds: float) -> BackendClient:
    """Default factory used by the indexing and search services."""
    return BackendClient(base_url, token, timeout_seconds=timeout_seconds)
