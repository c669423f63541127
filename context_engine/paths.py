"""Centralized file paths for the context engine.

All persistent file locations in one place for consistency.
The MCP server and any manual trigger share these paths for coordination.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = [
    'CONFIG_PATH',
    'DATA_DIR',
    'ENGINE_DIR',
    'MEMORIES_LOCK_PATH',
    'MEMORIES_PATH',
    'REGISTRY_LOCK_PATH',
    'REGISTRY_PATH',
    'STATUS_LOCK_PATH',
    'STATUS_PATH',
    'canonical_root',
]

# Base directories
ENGINE_DIR = Path.home() / '.context-engine'
DATA_DIR = ENGINE_DIR / 'data'

# Agent configuration (base_url, token, collection rules)
CONFIG_PATH = ENGINE_DIR / 'config.json'

# Blob registry: canonical project root -> blob identifiers known remotely
REGISTRY_PATH = DATA_DIR / 'projects.json'
REGISTRY_LOCK_PATH = DATA_DIR / 'projects.lock'

# Per-project index status records
STATUS_PATH = DATA_DIR / 'projects_status.json'
STATUS_LOCK_PATH = DATA_DIR / 'projects_status.lock'

# Per-project memory notes
MEMORIES_PATH = DATA_DIR / 'memories.json'
MEMORIES_LOCK_PATH = DATA_DIR / 'memories.lock'


def canonical_root(project_root: str | os.PathLike[str]) -> str:
    """Canonical key for a project root.

    Expands ``~``, resolves symlinks (non-strict, so missing paths still map to
    a stable absolute key) and renders with forward slashes. The same project
    referenced through different spellings maps to one store entry.
    """
    path = Path(project_root).expanduser().resolve()
    return path.as_posix().replace('\\', '/')
