"""Agent configuration schema.

Manages the persistent configuration for the context engine: the remote
backend endpoint and credentials, collection rules and search-time waiting.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Self

import httpx
import pydantic
from pydantic import Field

from context_engine.exceptions import ConfigurationError
from context_engine.paths import CONFIG_PATH
from context_engine.schemas.base import StrictModel

__all__ = [
    'DEFAULT_EXCLUDE_PATTERNS',
    'DEFAULT_TEXT_EXTENSIONS',
    'AgentConfig',
    'load_config',
    'save_config',
]

logger = logging.getLogger(__name__)

DEFAULT_TEXT_EXTENSIONS: Sequence[str] = (
    '.py', '.pyi', '.js', '.jsx', '.ts', '.tsx', '.mjs', '.cjs', '.vue', '.svelte',
    '.java', '.kt', '.kts', '.scala', '.go', '.rs', '.c', '.h', '.cc', '.cpp', '.hpp',
    '.cs', '.swift', '.m', '.rb', '.php', '.lua', '.dart', '.sh', '.bash', '.ps1',
    '.sql', '.html', '.css', '.scss', '.less', '.md', '.rst', '.txt',
    '.json', '.yaml', '.yml', '.toml', '.ini', '.cfg', '.xml',
)  # fmt: skip

DEFAULT_EXCLUDE_PATTERNS: Sequence[str] = (
    '.git', '.svn', '.hg', 'node_modules', '.venv', 'venv', '__pycache__',
    '.pytest_cache', '.mypy_cache', '.tox', '.idea', '.vscode', 'dist', 'build',
    'target', '.next', '.nuxt', 'coverage', '*.min.js', '*.min.css', '*.lock', '*.pyc',
)  # fmt: skip


class AgentConfig(StrictModel):
    """Context engine configuration.

    base_url and token are optional so an unconfigured install still loads;
    the indexing and search entry points validate them before any network
    call or state change.
    """

    base_url: str | None = None
    token: str | None = None
    batch_size: Annotated[int, Field(ge=1)] = 10
    max_lines_per_blob: Annotated[int, Field(ge=1)] = 800
    text_extensions: Sequence[str] = DEFAULT_TEXT_EXTENSIONS
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS
    # Seconds to wait before searching while an index run is in flight (inclusive)
    smart_wait_range: tuple[int, int] | None = (1, 5)
    # Memory tool also starts a background index when the search tool is enabled
    search_tool_enabled: bool = True
    request_timeout_seconds: Annotated[float, Field(gt=0)] = 60.0

    @pydantic.field_validator('smart_wait_range')
    @classmethod
    def _check_wait_range(cls, value: tuple[int, int] | None) -> tuple[int, int] | None:
        if value is None:
            return None
        low, high = value
        if low < 0 or high < low:
            raise ValueError(f'smart_wait_range must satisfy 0 <= min <= max, got {value}')
        return value

    def normalized(self) -> Self:
        """Return a copy with base_url trimmed, scheme-prefixed and without trailing slashes."""
        if self.base_url is None:
            return self
        url = self.base_url.strip()
        if url and not url.startswith(('http://', 'https://')):
            url = f'http://{url}'
        return self.model_copy(update={'base_url': url.rstrip('/')})

    def validate_for_indexing(self) -> tuple[str, str]:
        """Return (base_url, token) after strict validation.

        Raises:
            ConfigurationError: base_url missing, without http(s) scheme or host,
                or token missing.
        """
        base_url = self._require_base_url()
        if not base_url.startswith(('http://', 'https://')):
            raise ConfigurationError(
                f'Invalid base_url {base_url!r}: use the full http(s)://host[:port] form'
            )
        try:
            host = httpx.URL(base_url).host
        except httpx.InvalidURL as e:
            raise ConfigurationError(f'Invalid base_url {base_url!r}: {e}') from e
        if not host:
            raise ConfigurationError(f'Invalid base_url {base_url!r}: missing host')
        return base_url, self._require_token()

    def validate_for_search(self) -> tuple[str, str]:
        """Return (base_url, token), requiring only that both are present."""
        return self._require_base_url(), self._require_token()

    def summary(self) -> str:
        """One-line description of the collection rules, for memory notes."""
        return (
            f'extensions={list(self.text_extensions)}, '
            f'exclude_patterns={list(self.exclude_patterns)}, '
            f'batch_size={self.batch_size}, '
            f'max_lines_per_blob={self.max_lines_per_blob}'
        )

    def _require_base_url(self) -> str:
        if self.base_url is None or not self.base_url.strip():
            raise ConfigurationError('base_url is not configured')
        return self.base_url.strip()

    def _require_token(self) -> str:
        if self.token is None or not self.token.strip():
            raise ConfigurationError('token is not configured')
        return self.token.strip()


def load_config(path: Path = CONFIG_PATH) -> AgentConfig:
    """Load config from file, falling back to defaults when it does not exist.

    Raises:
        ConfigurationError: If the file exists but is not valid JSON or does
            not match the schema.
    """
    if not path.exists():
        logger.debug(f'No config file at {path}, using defaults')
        return AgentConfig()

    try:
        return AgentConfig.model_validate_json(path.read_text())
    except pydantic.ValidationError as e:
        raise ConfigurationError(f'Invalid config file at {path}: {e}') from e


def save_config(config: AgentConfig, path: Path = CONFIG_PATH) -> None:
    """Save config to file, creating parent directories if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2) + '\n')
    logger.info(f'Saved context engine config to {path}')
