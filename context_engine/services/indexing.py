"""Indexing service - incremental, content-addressed upload of a project.

Coordinates: collect → identify → diff against registry → batched upload →
registry rewrite → status, with every step recorded in the status store.

State machine per project:
- idle/synced/failed → indexing at the start of a run
- indexing → synced on success, failed on any error after the run started
- configuration errors are raised before the run starts and change nothing

Runs are single-flight per canonical project root: a trigger that arrives
while a run is in flight awaits that run instead of starting another.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from context_engine.clients.backend import BackendClientFactory, create_backend_client
from context_engine.clients.protocols import MemoryWriter
from context_engine.exceptions import BackendError, EmptyIndexError, NoIndexableFilesError
from context_engine.paths import canonical_root
from context_engine.repositories.protocols import BlobRegistry, StatusRepository
from context_engine.schemas.blobs import Blob
from context_engine.schemas.config import AgentConfig
from context_engine.services.chunking import blob_identifier
from context_engine.services.collector import collect_blobs

__all__ = [
    'IndexingService',
    'UploadOutcome',
]

logger = logging.getLogger(__name__)

# Progress checkpoints: collection done, upload window end, synced
PROGRESS_COLLECTED = 20
PROGRESS_UPLOADED = 95
PROGRESS_DONE = 100

@dataclass
class UploadOutcome:
    """Names returned by successful batches and 1-based indexes of failed ones."""

    blob_names: list[str] = field(default_factory=list)
    failed_batches: list[int] = field(default_factory=list)


class IndexingService:
    """Runs index updates against the remote backend.

    Collection and hashing run in worker threads; uploads are sequential, one
    batch in flight at a time.
    """

    def __init__(
        self,
        registry: BlobRegistry,
        status: StatusRepository,
        memory: MemoryWriter | None = None,
        *,
        client_factory: BackendClientFactory = create_backend_client,
    ) -> None:
        self._registry = registry
        self._status = status
        self._memory = memory
        self._client_factory = client_factory
        self._runs: dict[str, asyncio.Task[Sequence[str]]] = {}

    def is_running(self, project_root: str) -> bool:
        """Whether a run is in flight for the project."""
        return canonical_root(project_root) in self._runs

    async def update_index(self, config: AgentConfig, project_root: str) -> Sequence[str]:
        """Bring the project's remote index up to date.

        Args:
            config: Agent configuration; base_url and token are validated first.
            project_root: Project directory, any spelling (canonicalized here).

        Returns:
            The project's merged blob identifier list, as persisted.

        Raises:
            ConfigurationError: Invalid base_url or token. No state is touched.
            ProjectRootNotFoundError: Root missing (recorded as failed).
            NoIndexableFilesError: Nothing to index (recorded as failed).
            EmptyIndexError: Every upload failed and nothing was known before
                (recorded as failed).
        """
        base_url, token = config.validate_for_indexing()
        key = canonical_root(project_root)

        in_flight = self._runs.get(key)
        if in_flight is not None:
            logger.info(f'[INDEX] Run already in flight for {key}, joining it')
            return await asyncio.shield(in_flight)

        task = asyncio.create_task(self._run(config, base_url, token, key), name=f'index:{key}')
        self._runs[key] = task
        task.add_done_callback(lambda done: self._forget_run(key, done))
        return await asyncio.shield(task)

    def _forget_run(self, key: str, task: asyncio.Task[Sequence[str]]) -> None:
        if self._runs.get(key) is task:
            del self._runs[key]

    async def _run(self, config: AgentConfig, base_url: str, token: str, key: str) -> Sequence[str]:
        started = await asyncio.to_thread(self._status.update, key, status='indexing', progress=0)
        first_success = started.last_success_time is None
        logger.info(f'[INDEX] Starting index run for {key}')

        try:
            merged = await self._index(config, base_url, token, key)
        except asyncio.CancelledError:
            await asyncio.to_thread(self._mark_failed, key, 'Index run cancelled')
            raise
        except Exception as e:
            await asyncio.to_thread(self._mark_failed, key, str(e) or type(e).__name__)
            logger.error(f'[INDEX] Run failed for {key}: {type(e).__name__}: {e}')
            raise

        if first_success:
            await self._write_first_index_note(config, key, len(merged))
        return merged

    async def _index(self, config: AgentConfig, base_url: str, token: str, key: str) -> Sequence[str]:
        blobs = await asyncio.to_thread(
            collect_blobs,
            key,
            config.text_extensions,
            config.exclude_patterns,
            config.max_lines_per_blob,
        )
        if not blobs:
            raise NoIndexableFilesError(key)

        await asyncio.to_thread(
            self._status.update, key, total_files=len(blobs), progress=PROGRESS_COLLECTED
        )

        known = await asyncio.to_thread(self._registry.get, key)
        identifiers = await asyncio.to_thread(_identify, blobs)

        known_set = set(known)
        current_set = set(identifiers)
        existing = _unique(name for name in identifiers if name in known_set)
        new_blobs = _unique_blobs((blob, name) for blob, name in zip(blobs, identifiers) if name not in known_set)
        dropped = len(known_set - current_set)
        logger.info(
            f'[INDEX] {key}: {len(blobs)} blobs, {len(existing)} already uploaded, '
            f'{len(new_blobs)} new, {dropped} stale dropped'
        )

        outcome = UploadOutcome()
        if new_blobs:
            outcome = await self._upload(config, base_url, token, key, new_blobs)

        merged = _unique([*existing, *outcome.blob_names])
        await asyncio.to_thread(self._registry.put, key, merged)

        if not merged:
            raise EmptyIndexError(key)

        await asyncio.to_thread(
            self._status.update,
            key,
            status='synced',
            progress=PROGRESS_DONE,
            indexed_files=len(blobs),
            pending_files=0,
            last_success_time=datetime.now(UTC),
            last_error=None,
        )
        logger.info(f'[INDEX] Synced {key}: {len(merged)} blob identifiers')
        return merged

    async def _upload(
        self,
        config: AgentConfig,
        base_url: str,
        token: str,
        key: str,
        blobs: Sequence[Blob],
    ) -> UploadOutcome:
        """Upload blobs in batches. A failed batch is recorded and skipped."""
        batches = [blobs[i : i + config.batch_size] for i in range(0, len(blobs), config.batch_size)]
        outcome = UploadOutcome()
        remaining = len(blobs)

        async with self._client_factory(base_url, token, config.request_timeout_seconds) as client:
            for batch_number, batch in enumerate(batches, start=1):
                try:
                    names = await client.upload_batch(batch)
                except (BackendError, httpx.HTTPError) as e:
                    outcome.failed_batches.append(batch_number)
                    logger.warning(
                        f'[UPLOAD] Batch {batch_number}/{len(batches)} ({len(batch)} blobs) failed: '
                        f'{type(e).__name__}: {e}'
                    )
                else:
                    outcome.blob_names.extend(names)
                    logger.debug(f'[UPLOAD] Batch {batch_number}/{len(batches)}: {len(names)} blob names')

                remaining -= len(batch)
                span = PROGRESS_UPLOADED - PROGRESS_COLLECTED
                progress = PROGRESS_COLLECTED + span * batch_number // len(batches)
                await asyncio.to_thread(self._status.update, key, progress=progress, pending_files=remaining)

        if outcome.failed_batches:
            logger.warning(
                f'[UPLOAD] {len(outcome.failed_batches)} of {len(batches)} batches failed for {key}: '
                f'{outcome.failed_batches}'
            )
        return outcome

    def _mark_failed(self, key: str, error: str) -> None:
        self._status.update(
            key,
            status='failed',
            last_error=error,
            last_failure_time=datetime.now(UTC),
        )

    async def _write_first_index_note(self, config: AgentConfig, key: str, blob_count: int) -> None:
        """Leave one context note after a project's first successful index. Best-effort."""
        if self._memory is None:
            return
        content = (
            f'Project indexed for codebase search for the first time ({blob_count} blobs). '
            f'Config summary: {config.summary()}'
        )
        try:
            await asyncio.to_thread(self._memory.add_memory, key, content, 'context')
        except Exception as e:
            logger.warning(f'[INDEX] Could not write first-index memory note for {key}: {e}')


def _identify(blobs: Sequence[Blob]) -> list[str]:
    return [blob_identifier(blob.path, blob.content) for blob in blobs]


def _unique(names: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping first occurrence order."""
    return list(dict.fromkeys(names))


def _unique_blobs(pairs: Iterable[tuple[Blob, str]]) -> list[Blob]:
    """Blobs with distinct identifiers, keeping first occurrence order."""
    seen: dict[str, Blob] = {}
    for blob, name in pairs:
        seen.setdefault(name, blob)
    return list(seen.values())
