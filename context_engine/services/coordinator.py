"""Index coordinator - reconciles search requests with index freshness.

Every search runs against whatever the registry holds right now. What
happens first depends on the project's search-time state:

- missing / idle / failed: start a detached index run, search immediately,
  tell the caller indexing started in the background
- indexing: wait a random whole number of seconds from smart_wait_range so
  the in-flight run can land more blobs, then search
- synced: search immediately
"""

from __future__ import annotations

import asyncio
import logging
import random
import typing
from collections.abc import Awaitable, Callable, Mapping

import httpx

from context_engine.background_tasks import BackgroundTaskGroup
from context_engine.clients.protocols import ProjectWatcher
from context_engine.exceptions import ConfigurationError, ContextEngineError
from context_engine.paths import canonical_root
from context_engine.repositories.protocols import StatusRepository
from context_engine.schemas.config import AgentConfig, load_config
from context_engine.schemas.search import SearchContextResult
from context_engine.schemas.status import ProjectIndexStatus, SearchIndexState, derive_search_state
from context_engine.services.indexing import IndexingService
from context_engine.services.search import SearchService

__all__ = [
    'BACKGROUND_INDEX_HINT',
    'IndexCoordinator',
    'smart_wait_hint',
]

logger = logging.getLogger(__name__)

BACKGROUND_INDEX_HINT = (
    'Hint: the project index is not fully initialized yet. Indexing has started in the '
    'background, so later searches will return more complete results.'
)


def smart_wait_hint(wait_seconds: int) -> str:
    """Hint appended after waiting for an in-flight index run."""
    unit = 'second' if wait_seconds == 1 else 'seconds'
    return (
        f'Hint: indexing is in progress for this project; waited {wait_seconds} {unit} '
        f'to get more complete search results.'
    )


class IndexCoordinator:
    """Entry point for search and index requests on a project.

    Configuration is reloaded on every request so edits to the config file
    apply without a restart.
    """

    def __init__(
        self,
        indexing: IndexingService,
        search: SearchService,
        status: StatusRepository,
        background: BackgroundTaskGroup,
        *,
        config_loader: Callable[[], AgentConfig] = load_config,
        watcher: ProjectWatcher | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._indexing = indexing
        self._search = search
        self._status = status
        self._background = background
        self._config_loader = config_loader
        self._watcher = watcher
        self._sleep = sleep
        self._rng = rng or random.Random()

    def load_config(self) -> AgentConfig:
        """Current configuration with base_url normalized."""
        return self._config_loader().normalized()

    async def search_context(self, project_root: str, query: str) -> SearchContextResult:
        """Search the project's index, starting or waiting on indexing as needed.

        Search failures come back as an error result, never as an exception.

        Raises:
            ConfigurationError: The config file itself cannot be loaded.
        """
        config = self.load_config()
        key = canonical_root(project_root)
        logger.info(f'[SEARCH] Request for {key}: {query!r}')

        await self._ensure_watching(key, config)

        state = await self.search_state(key)
        logger.debug(f'[SEARCH] {key} search-time state: {state}')

        hint: str | None = None
        match state:
            case 'missing' | 'idle' | 'failed':
                if self._spawn_background_index(config, key):
                    hint = BACKGROUND_INDEX_HINT
            case 'indexing':
                if config.smart_wait_range is not None:
                    low, high = config.smart_wait_range
                    wait_seconds = self._rng.randint(low, high)
                    logger.info(f'[SEARCH] Index run in progress for {key}, waiting {wait_seconds}s before searching')
                    await self._sleep(wait_seconds)
                    hint = smart_wait_hint(wait_seconds)
            case 'synced':
                pass
            case _:
                typing.assert_never(state)

        try:
            text = await self._search.search(config, key, query)
        except (ContextEngineError, httpx.HTTPError) as e:
            logger.warning(f'[SEARCH] Search failed for {key}: {type(e).__name__}: {e}')
            return SearchContextResult(text=f'Codebase search failed: {e}', is_error=True)

        return SearchContextResult(text=text, hint=hint)

    async def index_and_search(self, project_root: str, query: str) -> SearchContextResult:
        """Run a full index update, then search. Failures become error results."""
        config = self.load_config()
        key = canonical_root(project_root)

        try:
            await self._indexing.update_index(config, key)
        except (ContextEngineError, httpx.HTTPError) as e:
            return SearchContextResult(text=f'Index update failed: {e}', is_error=True)

        try:
            text = await self._search.search(config, key, query)
        except (ContextEngineError, httpx.HTTPError) as e:
            return SearchContextResult(text=f'Search failed: {e}', is_error=True)
        return SearchContextResult(text=text)

    async def trigger_index_update(self, project_root: str) -> str:
        """Run an index update in the foreground and describe the outcome.

        Raises:
            ContextEngineError: Configuration, collection or empty-index failures.
        """
        config = self.load_config()
        blob_names = await self._indexing.update_index(config, project_root)
        return f'Index updated successfully: {len(blob_names)} blobs'

    async def get_index_status(self, project_root: str) -> ProjectIndexStatus:
        """Stored status record for one project (default idle if unknown)."""
        return await asyncio.to_thread(self._status.get, canonical_root(project_root))

    async def get_all_index_status(self) -> Mapping[str, ProjectIndexStatus]:
        """Every stored status record, keyed by canonical root."""
        return await asyncio.to_thread(self._status.list_all)

    async def search_state(self, project_root: str) -> SearchIndexState:
        """Search-time state derived from the stored status."""
        return derive_search_state(await self.get_index_status(project_root))

    async def ensure_background_index(self, config: AgentConfig, project_root: str) -> bool:
        """Start a detached index run if the project is missing, idle or failed.

        Returns:
            True if a run was started.
        """
        key = canonical_root(project_root)
        state = await self.search_state(key)
        match state:
            case 'missing' | 'idle' | 'failed':
                return self._spawn_background_index(config, key)
            case 'indexing' | 'synced':
                return False
            case _:
                typing.assert_never(state)

    def _spawn_background_index(self, config: AgentConfig, key: str) -> bool:
        try:
            config.validate_for_indexing()
        except ConfigurationError as e:
            logger.warning(f'[BACKGROUND] Not indexing {key}: {e}')
            return False
        logger.info(f'[BACKGROUND] Starting background index for {key}')
        self._background.submit(self._indexing.update_index(config, key), label=key)
        return True

    async def _ensure_watching(self, key: str, config: AgentConfig) -> None:
        if self._watcher is None or self._watcher.is_watching(key):
            return
        try:
            await self._watcher.start_watching(key, config)
        except Exception as e:
            logger.debug(f'[WATCH] Could not start watcher for {key}: {e}')
