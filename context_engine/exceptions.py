"""Exception hierarchy for the context engine.

Tool entry points catch ContextEngineError subclasses and turn them into
tool-level error results. Anything else is a bug and propagates.
"""

from __future__ import annotations

__all__ = [
    'BackendError',
    'BackendResponseError',
    'BackendStatusError',
    'CollectionError',
    'ConfigurationError',
    'ContextEngineError',
    'EmptyIndexError',
    'NoIndexableFilesError',
    'NotIndexedError',
    'ProjectRootNotFoundError',
]


class ContextEngineError(Exception):
    """Base class for expected engine failures."""


class ConfigurationError(ContextEngineError):
    """Missing or malformed base_url/token, or an unreadable config file."""


class CollectionError(ContextEngineError):
    """File collection could not produce indexable content."""


class ProjectRootNotFoundError(CollectionError):
    """Project root does not exist."""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root
        super().__init__(f'Project root does not exist: {project_root}')


class NoIndexableFilesError(CollectionError):
    """Collection finished but no file matched the extension and exclusion rules."""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root
        super().__init__(f'No indexable files found in {project_root}')


class EmptyIndexError(ContextEngineError):
    """Run finished but the merged registry entry is empty."""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root
        super().__init__(f'Indexed but produced zero blob identifiers for {project_root}')


class NotIndexedError(ContextEngineError):
    """Search requested for a project whose registry entry is empty."""

    def __init__(self, project_root: str) -> None:
        self.project_root = project_root
        super().__init__(f'Project has not been indexed yet or its index is empty: {project_root}')


class BackendError(ContextEngineError):
    """Remote backend call failed."""


class BackendStatusError(BackendError):
    """Backend answered with a non-success HTTP status.

    Carries the status code so retry classification does not depend on the
    rendered message.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f'HTTP {status_code} {body}'.rstrip())


class BackendResponseError(BackendError):
    """Backend answered with a success status but an unusable payload."""
