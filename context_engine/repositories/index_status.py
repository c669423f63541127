"""Per-project index status with file locking.

Status records are created with defaults on first observation and afterwards
only overwritten, never deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import filelock
import pydantic

from context_engine.paths import STATUS_LOCK_PATH, STATUS_PATH
from context_engine.repositories._json_file import read_json_file, write_json_file
from context_engine.schemas.status import ProjectIndexStatus

__all__ = [
    'IndexStatusStore',
]

logger = logging.getLogger(__name__)

_STATUS_ADAPTER = pydantic.TypeAdapter(dict[str, ProjectIndexStatus])


class IndexStatusStore:
    """File-backed status records keyed by canonical project root."""

    def __init__(
        self,
        state_path: Path = STATUS_PATH,
        lock_path: Path = STATUS_LOCK_PATH,
    ) -> None:
        self._state_path = state_path
        self._lock = filelock.FileLock(lock_path)

    def get(self, project_root: str) -> ProjectIndexStatus:
        """Current record, or a default idle record if the project is unknown."""
        record = self._load().get(project_root)
        if record is None:
            return ProjectIndexStatus(project_root=project_root)
        return record

    def put(self, status: ProjectIndexStatus) -> None:
        """Overwrite the record for status.project_root."""
        with self._lock:
            records = self._load()
            records[status.project_root] = status
            write_json_file(self._state_path, _STATUS_ADAPTER, records)

    def update(  # strict_typing_linter.py: loose-typing
        self,
        project_root: str,
        **changes: Any,
    ) -> ProjectIndexStatus:
        """Apply field changes to a record atomically and return the new record.

        The read and the write happen under one lock hold, so concurrent
        updates to different fields of the same record do not lose each other.
        """
        with self._lock:
            records = self._load()
            current = records.get(project_root) or ProjectIndexStatus(project_root=project_root)
            updated = ProjectIndexStatus.model_validate({**current.model_dump(), **changes})
            records[project_root] = updated
            write_json_file(self._state_path, _STATUS_ADAPTER, records)
        logger.debug(f'[STATUS] {project_root}: {updated.status} ({updated.progress}%)')
        return updated

    def list_all(self) -> Mapping[str, ProjectIndexStatus]:
        """Every known record."""
        return self._load()

    def _load(self) -> dict[str, ProjectIndexStatus]:
        return read_json_file(self._state_path, _STATUS_ADAPTER, {})
