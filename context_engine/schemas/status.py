"""Index status schemas.

The stored state machine has four states:

    idle ──> indexing ──> synced
                 │  ^        │
                 v  └────────┘
               failed ──> indexing (next run)

Search-time policy works on a derived view that adds ``missing`` for records
that claim files but were never indexed (see derive_search_state).
"""

from __future__ import annotations

import typing
from typing import Literal

import pydantic

from context_engine.schemas.base import JsonDatetime, StrictModel

__all__ = [
    'IndexStatus',
    'ProjectIndexStatus',
    'SearchIndexState',
    'derive_search_state',
]

# Stored per-project state
type IndexStatus = Literal['idle', 'indexing', 'synced', 'failed']

# Search-time view layered on top of IndexStatus
type SearchIndexState = Literal['missing', 'idle', 'indexing', 'synced', 'failed']


class ProjectIndexStatus(StrictModel):
    """Persistent indexing status for one project.

    Created with defaults on first observation, then only overwritten.
    """

    project_root: str
    status: IndexStatus = 'idle'
    progress: typing.Annotated[int, pydantic.Field(ge=0, le=100)] = 0
    total_files: int = 0
    indexed_files: int = 0
    pending_files: int = 0
    last_error: str | None = None
    last_success_time: JsonDatetime | None = None
    last_failure_time: JsonDatetime | None = None


def derive_search_state(status: ProjectIndexStatus) -> SearchIndexState:
    """Map a stored status record to the search-time state.

    An idle record with total_files > 0 is reported as missing: the record says
    files were collected but nothing completed. Whether this is reachable or a
    leftover from older records is unresolved, so it is kept distinct.
    """
    match status.status:
        case 'idle':
            return 'idle' if status.total_files == 0 else 'missing'
        case 'indexing':
            return 'indexing'
        case 'synced':
            return 'synced'
        case 'failed':
            return 'failed'
        case _:
            typing.assert_never(status.status)
