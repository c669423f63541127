"""Clients for external services and collaborator protocols."""

from __future__ import annotations

from context_engine.clients.backend import BackendClient
from context_engine.clients.protocols import MemoryWriter, ProjectWatcher

__all__ = [
    'BackendClient',
    'MemoryWriter',
    'ProjectWatcher',
]
