"""Line-aligned content chunking and content addressing.

Large files are split into fixed-size line windows so each upload stays
bounded and retrieval stays line-aligned. Every blob is identified by the
SHA-256 of its path and content, which doubles as the dedup key against the
remote backend.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Sequence

from context_engine.schemas.blobs import Blob

__all__ = [
    'blob_identifier',
    'chunk_path',
    'split_content',
]


def split_content(path: str, content: str, max_lines: int) -> Sequence[Blob]:
    """Split file content into one or more blobs on line boundaries.

    Lines keep their terminators, so concatenating the chunk contents in order
    reproduces the original content exactly.

    Args:
        path: Root-relative, slash-normalized file path.
        content: Decoded file content.
        max_lines: Maximum lines per blob.

    Returns:
        A single blob named after the file when it fits, otherwise chunks named
        "<path>#chunk<i>of<n>" with 1-based i.
    """
    if max_lines < 1:
        raise ValueError(f'max_lines must be positive, got {max_lines}')

    lines = _split_lines(content)
    if len(lines) <= max_lines:
        return [Blob(path=path, content=content)]

    num_chunks = math.ceil(len(lines) / max_lines)
    blobs: list[Blob] = []
    for chunk_index in range(num_chunks):
        start = chunk_index * max_lines
        window = lines[start : start + max_lines]
        blobs.append(Blob(path=chunk_path(path, chunk_index + 1, num_chunks), content=''.join(window)))
    return blobs


def chunk_path(path: str, chunk_number: int, num_chunks: int) -> str:
    """Blob path for the 1-based chunk_number of num_chunks."""
    return f'{path}#chunk{chunk_number}of{num_chunks}'


def blob_identifier(path: str, content: str) -> str:
    """Content address of a blob: SHA-256 over path bytes then content bytes."""
    hasher = hashlib.sha256()
    hasher.update(path.encode('utf-8'))
    hasher.update(content.encode('utf-8'))
    return hasher.hexdigest()


def _split_lines(content: str) -> Sequence[str]:
    """Split on '\\n' only, keeping terminators. A trailing partial line counts as a line."""
    parts = content.split('\n')
    lines = [part + '\n' for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines
