"""Narrow store interfaces the services depend on.

The file-backed stores in this package satisfy them; tests substitute
in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from context_engine.schemas.status import ProjectIndexStatus

__all__ = [
    'BlobRegistry',
    'StatusRepository',
]


class BlobRegistry(Protocol):
    """Canonical project root -> blob identifiers known remotely."""

    def get(self, project_root: str) -> Sequence[str]: ...

    def put(self, project_root: str, blob_names: Sequence[str]) -> None: ...

    def list_all(self) -> Mapping[str, Sequence[str]]: ...


class StatusRepository(Protocol):
    """Canonical project root -> index status record."""

    def get(self, project_root: str) -> ProjectIndexStatus:
        """Stored record, or a default idle one."""
        ...

    def put(self, status: ProjectIndexStatus) -> None: ...

    def update(self, project_root: str, **changes: Any) -> ProjectIndexStatus:  # strict_typing_linter.py: loose-typing
        """Apply field changes atomically and return the new record."""
        ...

    def list_all(self) -> Mapping[str, ProjectIndexStatus]: ...
