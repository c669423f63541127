"""Memory tool actions: remember and recall per-project notes."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Literal

from context_engine.exceptions import ContextEngineError, ProjectRootNotFoundError
from context_engine.paths import canonical_root
from context_engine.repositories.memory_store import MemoryStore
from context_engine.schemas.memory import parse_category
from context_engine.services.coordinator import IndexCoordinator

__all__ = [
    'MEMORY_INDEX_HINT',
    'MemoryAction',
    'MemoryService',
]

logger = logging.getLogger(__name__)

type MemoryAction = Literal['remember', 'recall']

MEMORY_INDEX_HINT = 'Hint: code indexing started in the background for this project so codebase search can use it.'


class MemoryService:
    """Adds and recalls memory notes.

    When codebase search is enabled in the config, each call also makes sure
    the project has (or is getting) an index.
    """

    def __init__(self, store: MemoryStore, coordinator: IndexCoordinator) -> None:
        self._store = store
        self._coordinator = coordinator

    async def remember(self, project_root: str, content: str, category: str) -> str:
        """Store a note. Unknown categories are stored as 'context'.

        Raises:
            ValueError: content is blank.
            ProjectRootNotFoundError: project_root is not a directory.
        """
        key = self._validate_project(project_root)
        if not content.strip():
            raise ValueError('Memory content is required for the remember action')

        parsed = parse_category(category)
        hint = await self._index_hint(key)
        memory_id = await asyncio.to_thread(self._store.add_memory, key, content, parsed)
        return _with_hint(f'Memory added (id: {memory_id})\nContent: {content}\nCategory: {parsed}', hint)

    async def recall(self, project_root: str) -> str:
        """Summarize the project's notes grouped by category."""
        key = self._validate_project(project_root)
        hint = await self._index_hint(key)
        summary = await asyncio.to_thread(self._store.project_summary, key)
        return _with_hint(summary, hint)

    def _validate_project(self, project_root: str) -> str:
        if not Path(project_root).expanduser().is_dir():
            raise ProjectRootNotFoundError(project_root)
        return canonical_root(project_root)

    async def _index_hint(self, key: str) -> str | None:
        """Start background indexing when enabled. Failures only cost the hint."""
        try:
            config = self._coordinator.load_config()
            if not config.search_tool_enabled:
                return None
            started = await self._coordinator.ensure_background_index(config, key)
        except ContextEngineError as e:
            logger.warning(f'[MEMORY] Background index check skipped for {key}: {e}')
            return None
        return MEMORY_INDEX_HINT if started else None


def _with_hint(text: str, hint: str | None) -> str:
    return text if hint is None else f'{text}\n\n{hint}'
