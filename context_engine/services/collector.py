"""Project file collection.

Walks a project tree, applies .gitignore and exclusion globs plus an extension
allow-list, decodes surviving files and splits them into blobs.

Traversal is an explicit stack rather than recursion so very deep trees cannot
exhaust the interpreter stack. Directory entries are visited in sorted order,
making the output deterministic for a given tree.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from pathspec import GitIgnoreSpec

from context_engine.exceptions import ProjectRootNotFoundError
from context_engine.schemas.blobs import Blob
from context_engine.services.chunking import split_content
from context_engine.services.encoding import read_text_file

__all__ = [
    'CollectionStats',
    'ExclusionRules',
    'collect_blobs',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionRules:
    """Compiled skip rules for one collection run."""

    gitignore: GitIgnoreSpec | None
    exclude_patterns: Sequence[str]
    extensions: frozenset[str]

    @classmethod
    def build(cls, root: Path, extensions: Iterable[str], exclude_patterns: Iterable[str]) -> ExclusionRules:
        normalized = frozenset(ext.lower() if ext.startswith('.') else f'.{ext.lower()}' for ext in extensions)
        return cls(
            gitignore=_load_gitignore(root),
            exclude_patterns=tuple(exclude_patterns),
            extensions=normalized,
        )

    def is_gitignored(self, rel_path: str, *, is_dir: bool) -> bool:
        """Check the root .gitignore. Directories are matched with a trailing slash."""
        if self.gitignore is None:
            return False
        return self.gitignore.match_file(f'{rel_path}/' if is_dir else rel_path)

    def is_excluded(self, rel_path: str) -> bool:
        """Excluded when the full relative path or any single segment matches a pattern.

        Segment matching means a pattern like 'node_modules' excludes that
        directory at any depth, not only at the root.
        """
        if not self.exclude_patterns:
            return False
        candidates = (rel_path, *PurePosixPath(rel_path).parts)
        return any(
            fnmatch.fnmatchcase(candidate, pattern) for pattern in self.exclude_patterns for candidate in candidates
        )

    def has_allowed_extension(self, name: str) -> bool:
        suffix = PurePosixPath(name).suffix.lower()
        return bool(suffix) and suffix in self.extensions


@dataclass
class CollectionStats:
    """Counters reported at the end of a collection run."""

    files_scanned: int = 0
    files_indexed: int = 0
    files_unreadable: int = 0
    excluded: int = 0
    gitignored: int = 0
    blobs: int = 0
    unreadable_paths: list[str] = field(default_factory=list)


def collect_blobs(
    root: str | os.PathLike[str],
    extensions: Iterable[str],
    exclude_patterns: Iterable[str],
    max_lines_per_blob: int,
) -> Sequence[Blob]:
    """Collect blobs for every indexable file under root.

    Args:
        root: Project root directory.
        extensions: Allowed file extensions, compared case-insensitively (".py").
        exclude_patterns: fnmatch globs matched against the relative path and
            against each path segment.
        max_lines_per_blob: Files with more lines are split into chunks.

    Returns:
        Blobs in deterministic traversal order.

    Raises:
        ProjectRootNotFoundError: If root does not exist.
    """
    root_path = Path(root)
    if not root_path.exists():
        raise ProjectRootNotFoundError(str(root))

    rules = ExclusionRules.build(root_path, extensions, exclude_patterns)
    stats = CollectionStats()
    blobs: list[Blob] = []

    logger.info(
        f'[SCAN] Collecting files under {root_path} '
        f'({len(rules.extensions)} extensions, {len(rules.exclude_patterns)} exclude patterns, '
        f'gitignore={"yes" if rules.gitignore else "no"})'
    )

    stack: list[Path] = [root_path]
    while stack:
        directory = stack.pop()
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            logger.debug(f'[SCAN] Cannot list {directory}: {e}')
            continue

        for entry in entries:
            entry_path = Path(entry.path)
            rel_path = entry_path.relative_to(root_path).as_posix()
            # Symlinked directories are not followed (cycles); symlinked files are read
            is_dir = entry.is_dir(follow_symlinks=False)

            if rules.is_gitignored(rel_path, is_dir=is_dir):
                stats.gitignored += 1
                continue

            if is_dir:
                if rules.is_excluded(rel_path):
                    stats.excluded += 1
                    continue
                stack.append(entry_path)
                continue

            stats.files_scanned += 1
            if rules.is_excluded(rel_path):
                stats.excluded += 1
                logger.debug(f'[SCAN] Excluded {rel_path}')
                continue

            if not rules.has_allowed_extension(entry.name):
                continue

            content = read_text_file(entry_path)
            if content is None:
                stats.files_unreadable += 1
                stats.unreadable_paths.append(rel_path)
                continue

            parts = split_content(rel_path, content, max_lines_per_blob)
            blobs.extend(parts)
            stats.files_indexed += 1
            logger.debug(f'[SCAN] Indexed {rel_path}: {len(content)} chars, {len(parts)} blob(s)')

    stats.blobs = len(blobs)
    logger.info(
        f'[SCAN] Collection complete: {stats.files_scanned} files scanned, '
        f'{stats.files_indexed} indexed, {stats.blobs} blobs, '
        f'{stats.excluded} excluded, {stats.gitignored} gitignored, {stats.files_unreadable} unreadable'
    )
    return blobs


def _load_gitignore(root: Path) -> GitIgnoreSpec | None:
    """Compile the root .gitignore, if there is one."""
    gitignore_path = root / '.gitignore'
    if not gitignore_path.is_file():
        return None
    try:
        lines = gitignore_path.read_text(encoding='utf-8', errors='replace').splitlines()
    except OSError as e:
        logger.warning(f'[SCAN] Cannot read {gitignore_path}, ignoring it: {e}')
        return None
    return GitIgnoreSpec.from_lines(lines)
