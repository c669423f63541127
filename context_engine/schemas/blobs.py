"""Blob schemas.

A blob is the unit of text submitted to the remote backend: a whole file, or
one line-aligned chunk of a large file.
"""

from __future__ import annotations

from context_engine.schemas.base import StrictModel

__all__ = [
    'Blob',
]


class Blob(StrictModel):
    """Named text content, recomputed on every indexing run.

    path is the slash-normalized path relative to the project root, or
    "<path>#chunk<i>of<n>" for a chunk of a file longer than max_lines_per_blob.
    """

    path: str
    content: str
