"""Locked, atomic JSON file persistence shared by the file-backed stores.

Private module - import the stores from the repositories package.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pydantic

__all__ = [
    'read_json_file',
    'write_json_file',
]

logger = logging.getLogger(__name__)


def read_json_file[T](path: Path, adapter: pydantic.TypeAdapter[T], default: T) -> T:
    """Load and validate a JSON file. Returns default if missing or unreadable.

    A corrupt file is logged and treated as empty; the next write replaces it.
    """
    if not path.exists():
        return default
    try:
        return adapter.validate_json(path.read_bytes())
    except (OSError, pydantic.ValidationError) as e:
        logger.warning(f'[STORE] Ignoring unreadable state file {path}: {e}')
        return default


def write_json_file[T](path: Path, adapter: pydantic.TypeAdapter[T], value: T) -> None:
    """Write JSON atomically (temp file + rename). Caller must hold the file lock."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix('.tmp')
    temp_path.write_text(json.dumps(adapter.dump_python(value, mode='json'), indent=2) + '\n')
    temp_path.replace(path)
