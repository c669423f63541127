"""Memory note schemas.

Memory notes are short, per-project facts (rules, preferences, patterns,
context) kept across sessions. The indexer writes one context note the first
time a project is indexed successfully.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Literal

from context_engine.schemas.base import JsonDatetime, StrictModel

__all__ = [
    'MEMORY_CATEGORIES',
    'MemoryCategory',
    'MemoryEntry',
    'MemoryRegistry',
    'parse_category',
]

type MemoryCategory = Literal['rule', 'preference', 'pattern', 'context']

MEMORY_CATEGORIES: Sequence[MemoryCategory] = ('rule', 'preference', 'pattern', 'context')


class MemoryEntry(StrictModel):
    """A single memory note."""

    id: str
    content: str
    category: MemoryCategory
    created_at: JsonDatetime


class MemoryRegistry(StrictModel):
    """All memory notes, keyed by canonical project root."""

    projects: Mapping[str, Sequence[MemoryEntry]] = {}


def parse_category(raw: str) -> MemoryCategory:
    """Map a free-form category name to a MemoryCategory.

    Unknown names fall back to 'context'.
    """
    value = raw.strip().lower()
    for category in MEMORY_CATEGORIES:
        if value == category:
            return category
    return 'context'
