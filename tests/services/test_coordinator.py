"""Tests for search coordination against index freshness."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from context_engine.background_tasks import BackgroundTaskGroup
from context_engine.exceptions import NoIndexableFilesError
from context_engine.paths import canonical_root
from context_engine.schemas.config import AgentConfig
from context_engine.services.coordinator import BACKGROUND_INDEX_HINT, IndexCoordinator
from context_engine.services.indexing import IndexingService
from context_engine.services.search import SearchService
from tests.fakes import FakeBackend, FakeBlobRegistry, FakeStatusRepository, FakeWatcher

type ProjectFactory = Callable[[Mapping[str, str | bytes]], Path]


class _Harness:
    def __init__(
        self,
        config: AgentConfig,
        *,
        watcher: FakeWatcher | None = None,
        real_sleep: bool = False,
    ) -> None:
        self.config = config
        self.registry = FakeBlobRegistry()
        self.status = FakeStatusRepository()
        self.backend = FakeBackend(retrieval_text='context excerpt')
        self.background = BackgroundTaskGroup('test')
        self.sleeps: list[float] = []
        self.coordinator = IndexCoordinator(
            IndexingService(self.registry, self.status, client_factory=self.backend.client_factory),
            SearchService(self.registry, client_factory=self.backend.client_factory),
            self.status,
            self.background,
            config_loader=lambda: self.config,
            watcher=watcher,
            sleep=asyncio.sleep if real_sleep else self._record_sleep,
        )

    async def _record_sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class TestSearchContextStates:
    @pytest.mark.asyncio
    async def test_synced_searches_immediately_without_hint(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='synced', total_files=1)

        result = await harness.coordinator.search_context(str(root), 'where is a')

        assert result.is_error is False
        assert result.render() == 'context excerpt'
        assert harness.background.pending_count == 0
        assert harness.sleeps == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize('stored', ['failed', 'missing'])
    async def test_stale_states_trigger_background_index(
        self, config: AgentConfig, make_project: ProjectFactory, stored: str
    ) -> None:
        root = make_project({'a.py': 'a\n', 'b.py': 'b\n'})
        harness = _Harness(config)
        key = canonical_root(root)
        harness.registry.entries[key] = ['old-name']
        if stored == 'failed':
            harness.status.update(key, status='failed', last_error='earlier failure')
        else:
            harness.status.update(key, status='idle', total_files=5)

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.hint == BACKGROUND_INDEX_HINT
        assert result.render() == f'context excerpt\n\n{BACKGROUND_INDEX_HINT}'
        assert harness.backend.retrievals[0]['blobs']['added_blobs'] == ['old-name']

        await harness.background.drain()
        assert harness.status.get(key).status == 'synced'
        assert harness.background.failed_count == 0

    @pytest.mark.asyncio
    async def test_never_indexed_project_reports_error_but_starts_indexing(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.is_error is True
        assert result.text.startswith('Codebase search failed:')
        await harness.background.drain()
        assert harness.status.get(canonical_root(root)).status == 'synced'

    @pytest.mark.asyncio
    async def test_background_failure_is_only_logged(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'image.png': b'\x89PNG'})
        harness = _Harness(config)
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']

        result = await harness.coordinator.search_context(str(root), 'q')
        await harness.background.drain()

        assert result.is_error is False
        assert harness.background.failed_count == 1
        assert harness.status.get(key).status == 'failed'

    @pytest.mark.asyncio
    async def test_indexing_waits_for_sampled_seconds(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config, real_sleep=True)
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='indexing', progress=40)

        started = time.monotonic()
        result = await harness.coordinator.search_context(str(root), 'q')
        elapsed = time.monotonic() - started

        assert 0.9 <= elapsed < 3.0
        assert result.hint is not None
        assert 'waited 1 second ' in result.hint
        assert harness.background.pending_count == 0

    @pytest.mark.asyncio
    async def test_indexing_without_wait_range(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config.model_copy(update={'smart_wait_range': None}))
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='indexing')

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.hint is None
        assert harness.sleeps == []

    @pytest.mark.asyncio
    async def test_wait_samples_from_range(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config.model_copy(update={'smart_wait_range': (2, 4)}))
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='indexing')

        for _ in range(10):
            await harness.coordinator.search_context(str(root), 'q')

        assert all(2 <= s <= 4 and s == int(s) for s in harness.sleeps)
        assert len(harness.sleeps) == 10

    @pytest.mark.asyncio
    async def test_search_error_becomes_error_result(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='synced')
        harness.backend.retrieval_status = 500

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.is_error is True
        assert 'HTTP 500' in result.text

    @pytest.mark.asyncio
    async def test_base_url_is_normalized(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config.model_copy(update={'base_url': ' backend.test/// '}))
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='synced')

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.is_error is False
        assert len(harness.backend.retrievals) == 1


class TestWatcher:
    @pytest.mark.asyncio
    async def test_starts_watcher_once(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        watcher = FakeWatcher()
        harness = _Harness(config, watcher=watcher)
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='synced')

        await harness.coordinator.search_context(str(root), 'q')
        await harness.coordinator.search_context(str(root), 'q')

        assert watcher.start_calls == [key]

    @pytest.mark.asyncio
    async def test_watcher_failure_does_not_block_search(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config, watcher=FakeWatcher(fail=True))
        key = canonical_root(root)
        harness.registry.entries[key] = ['n1']
        harness.status.update(key, status='synced')

        result = await harness.coordinator.search_context(str(root), 'q')

        assert result.is_error is False


class TestOtherEntryPoints:
    @pytest.mark.asyncio
    async def test_trigger_index_update(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n', 'b.py': 'b\n', 'c.py': 'c\n'})
        harness = _Harness(config)

        message = await harness.coordinator.trigger_index_update(str(root))

        assert message == 'Index updated successfully: 3 blobs'

    @pytest.mark.asyncio
    async def test_trigger_index_update_raises_on_failure(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'image.png': b'\x89PNG'})
        with pytest.raises(NoIndexableFilesError):
            await _Harness(config).coordinator.trigger_index_update(str(root))

    @pytest.mark.asyncio
    async def test_index_and_search(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)

        result = await harness.coordinator.index_and_search(str(root), 'q')

        assert result.is_error is False
        assert result.text == 'context excerpt'
        assert harness.backend.retrievals[0]['blobs']['added_blobs'] == ['name:a.py']

    @pytest.mark.asyncio
    async def test_index_and_search_reports_index_failure(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'image.png': b'\x89PNG'})
        result = await _Harness(config).coordinator.index_and_search(str(root), 'q')
        assert result.is_error is True
        assert result.text.startswith('Index update failed:')

    @pytest.mark.asyncio
    async def test_status_queries(self, config: AgentConfig, make_project: ProjectFactory) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)
        await harness.coordinator.trigger_index_update(str(root))

        status = await harness.coordinator.get_index_status(str(root))
        everything = await harness.coordinator.get_all_index_status()

        assert status.status == 'synced'
        assert list(everything) == [canonical_root(root)]

    @pytest.mark.asyncio
    async def test_ensure_background_index_skips_synced_and_invalid_config(
        self, config: AgentConfig, make_project: ProjectFactory
    ) -> None:
        root = make_project({'a.py': 'a\n'})
        harness = _Harness(config)
        key = canonical_root(root)

        no_token = config.model_copy(update={'token': None})
        assert await harness.coordinator.ensure_background_index(no_token, key) is False
        harness.status.update(key, status='synced')
        assert await harness.coordinator.ensure_background_index(config, key) is False
        assert harness.background.pending_count == 0
