"""Protocol definitions for external collaborators.

The indexing and search core only depends on these interfaces. The memory
store in repositories satisfies MemoryWriter; no watcher ships with the
package, so ProjectWatcher is satisfied by whatever the host wires in.
"""

from __future__ import annotations

from typing import Protocol

from context_engine.schemas.config import AgentConfig
from context_engine.schemas.memory import MemoryCategory

__all__ = [
    'MemoryWriter',
    'ProjectWatcher',
]


class ProjectWatcher(Protocol):
    """File-system watcher that keeps a project's index fresh."""

    def is_watching(self, project_root: str) -> bool:
        """Whether the project (canonical root) is already watched."""
        ...

    async def start_watching(self, project_root: str, config: AgentConfig) -> None:
        """Begin watching the project. May raise; callers treat failures as best-effort."""
        ...


class MemoryWriter(Protocol):
    """Long-term memory note store."""

    def add_memory(self, project_root: str, content: str, category: MemoryCategory) -> str:
        """Persist a note and return its id."""
        ...
