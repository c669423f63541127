"""Blob registry with file locking.

Maps each canonical project root to the blob identifiers believed to exist on
the remote backend. Rewritten wholesale at the end of every indexing run,
which is the only way stale identifiers are pruned.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

import filelock
import pydantic

from context_engine.paths import REGISTRY_LOCK_PATH, REGISTRY_PATH
from context_engine.repositories._json_file import read_json_file, write_json_file

__all__ = [
    'BlobRegistryStore',
]

_REGISTRY_ADAPTER = pydantic.TypeAdapter(dict[str, list[str]])


class BlobRegistryStore:
    """File-backed blob registry.

    Keys are canonical project roots (see paths.canonical_root). Writes are
    read-modify-write under a file lock and land atomically.
    """

    def __init__(
        self,
        state_path: Path = REGISTRY_PATH,
        lock_path: Path = REGISTRY_LOCK_PATH,
    ) -> None:
        self._state_path = state_path
        self._lock = filelock.FileLock(lock_path)

    def get(self, project_root: str) -> Sequence[str]:
        """Identifiers for a project, in stored order. Empty if unknown."""
        return self._load().get(project_root, [])

    def put(self, project_root: str, blob_names: Sequence[str]) -> None:
        """Replace a project's identifier list."""
        with self._lock:
            registry = self._load()
            registry[project_root] = list(blob_names)
            write_json_file(self._state_path, _REGISTRY_ADAPTER, registry)

    def list_all(self) -> Mapping[str, Sequence[str]]:
        """Every project's identifier list."""
        return self._load()

    def _load(self) -> dict[str, list[str]]:
        return read_json_file(self._state_path, _REGISTRY_ADAPTER, {})
