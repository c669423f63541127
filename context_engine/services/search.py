"""Search service - retrieval against a project's uploaded blob set."""

from __future__ import annotations

import asyncio
import logging

from context_engine.clients.backend import BackendClientFactory, create_backend_client
from context_engine.exceptions import NotIndexedError
from context_engine.paths import canonical_root
from context_engine.repositories.protocols import BlobRegistry
from context_engine.schemas.config import AgentConfig
from context_engine.schemas.search import NO_CONTEXT_FOUND

__all__ = [
    'SearchService',
]

logger = logging.getLogger(__name__)


class SearchService:
    """Runs one retrieval request over every blob registered for a project.

    Read-only with respect to the registry: it never triggers indexing.
    """

    def __init__(
        self,
        registry: BlobRegistry,
        *,
        client_factory: BackendClientFactory = create_backend_client,
    ) -> None:
        self._registry = registry
        self._client_factory = client_factory

    async def search(self, config: AgentConfig, project_root: str, query: str) -> str:
        """Retrieve formatted code context for a query.

        Raises:
            ConfigurationError: base_url or token missing.
            NotIndexedError: The project has no registered blobs.
            BackendError: Backend failure after retries.
        """
        base_url, token = config.validate_for_search()
        key = canonical_root(project_root)

        blob_names = await asyncio.to_thread(self._registry.get, key)
        if not blob_names:
            raise NotIndexedError(key)

        logger.info(f'[SEARCH] {key}: querying {len(blob_names)} blobs')
        async with self._client_factory(base_url, token, config.request_timeout_seconds) as client:
            text = await client.retrieve(query, blob_names)

        if not text:
            logger.info(f'[SEARCH] {key}: empty retrieval')
            return NO_CONTEXT_FOUND
        return text
