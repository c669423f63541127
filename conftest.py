"""Shared fixtures for context engine tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from context_engine.schemas.config import AgentConfig

type ProjectFactory = Callable[[Mapping[str, str | bytes]], Path]


@pytest.fixture
def config() -> AgentConfig:
    """Valid config pointing at a backend served by httpx.MockTransport."""
    return AgentConfig(
        base_url='http://backend.test',
        token='secret-token',
        batch_size=2,
        max_lines_per_blob=800,
        text_extensions=('.py', '.md', '.js'),
        exclude_patterns=('node_modules', '.git', '*.min.js'),
        smart_wait_range=(1, 1),
    )


@pytest.fixture
def make_project(tmp_path: Path) -> ProjectFactory:
    """Create a project tree from {relative path: content}. Returns its root."""

    def factory(files: Mapping[str, str | bytes]) -> Path:
        root = tmp_path / 'project'
        root.mkdir(exist_ok=True)
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding='utf-8')
        return root

    return factory
