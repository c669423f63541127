"""Repositories for data persistence."""

from __future__ import annotations

from context_engine.repositories.blob_registry import BlobRegistryStore
from context_engine.repositories.index_status import IndexStatusStore
from context_engine.repositories.memory_store import MemoryStore
from context_engine.repositories.protocols import BlobRegistry, StatusRepository

__all__ = [
    'BlobRegistry',
    'BlobRegistryStore',
    'IndexStatusStore',
    'MemoryStore',
    'StatusRepository',
]
