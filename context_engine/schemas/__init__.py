"""Pydantic schemas for the context engine."""

from __future__ import annotations

from context_engine.schemas.base import JsonDatetime, StrictModel
from context_engine.schemas.blobs import Blob
from context_engine.schemas.config import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_TEXT_EXTENSIONS,
    AgentConfig,
    load_config,
    save_config,
)
from context_engine.schemas.memory import (
    MEMORY_CATEGORIES,
    MemoryCategory,
    MemoryEntry,
    MemoryRegistry,
    parse_category,
)
from context_engine.schemas.search import NO_CONTEXT_FOUND, SearchContextResult
from context_engine.schemas.status import (
    IndexStatus,
    ProjectIndexStatus,
    SearchIndexState,
    derive_search_state,
)

__all__ = [
    # Base
    'JsonDatetime',
    'StrictModel',
    # Blobs
    'Blob',
    # Config
    'DEFAULT_EXCLUDE_PATTERNS',
    'DEFAULT_TEXT_EXTENSIONS',
    'AgentConfig',
    'load_config',
    'save_config',
    # Memory
    'MEMORY_CATEGORIES',
    'MemoryCategory',
    'MemoryEntry',
    'MemoryRegistry',
    'parse_category',
    # Search
    'NO_CONTEXT_FOUND',
    'SearchContextResult',
    # Status
    'IndexStatus',
    'ProjectIndexStatus',
    'SearchIndexState',
    'derive_search_state',
]
