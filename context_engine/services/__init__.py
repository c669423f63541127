"""Domain services for the context engine."""

from __future__ import annotations

from context_engine.services.collector import collect_blobs
from context_engine.services.coordinator import IndexCoordinator
from context_engine.services.indexing import IndexingService
from context_engine.services.memory import MemoryService
from context_engine.services.search import SearchService

__all__ = [
    'IndexCoordinator',
    'IndexingService',
    'MemoryService',
    'SearchService',
    'collect_blobs',
]
