"""Per-project memory notes with file locking.

Notes are short facts (rules, preferences, patterns, context) kept across
sessions. The indexer adds one context note after a project's first
successful index; the memory tool adds and recalls the rest.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import filelock
import pydantic

from context_engine.paths import MEMORIES_LOCK_PATH, MEMORIES_PATH
from context_engine.repositories._json_file import read_json_file, write_json_file
from context_engine.schemas.memory import MEMORY_CATEGORIES, MemoryCategory, MemoryEntry, MemoryRegistry

__all__ = [
    'MemoryStore',
]

logger = logging.getLogger(__name__)

_MEMORY_ADAPTER = pydantic.TypeAdapter(MemoryRegistry)


class MemoryStore:
    """File-backed memory notes keyed by canonical project root."""

    def __init__(
        self,
        state_path: Path = MEMORIES_PATH,
        lock_path: Path = MEMORIES_LOCK_PATH,
    ) -> None:
        self._state_path = state_path
        self._lock = filelock.FileLock(lock_path)

    def add_memory(self, project_root: str, content: str, category: MemoryCategory) -> str:
        """Append a note and return its id."""
        entry = MemoryEntry(
            id=uuid.uuid4().hex,
            content=content,
            category=category,
            created_at=datetime.now(UTC),
        )
        with self._lock:
            registry = self._load()
            projects = dict(registry.projects)
            projects[project_root] = [*projects.get(project_root, []), entry]
            write_json_file(self._state_path, _MEMORY_ADAPTER, MemoryRegistry(projects=projects))

        logger.info(f'[MEMORY] Added {category} note {entry.id} for {project_root}')
        return entry.id

    def list_memories(self, project_root: str) -> Sequence[MemoryEntry]:
        """Notes for a project, oldest first."""
        return self._load().projects.get(project_root, [])

    def project_summary(self, project_root: str) -> str:
        """Render a project's notes grouped by category, for the recall action."""
        entries = self.list_memories(project_root)
        if not entries:
            return f'No memories stored for {project_root}.'

        sections = [f'Memories for {project_root}:']
        for category in MEMORY_CATEGORIES:
            notes = [entry for entry in entries if entry.category == category]
            if not notes:
                continue
            sections.append(f'\n[{category}]')
            sections.extend(f'- {note.content}' for note in notes)
        return '\n'.join(sections)

    def _load(self) -> MemoryRegistry:
        return read_json_file(self._state_path, _MEMORY_ADAPTER, MemoryRegistry())
