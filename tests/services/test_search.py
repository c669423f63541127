"""Tests for the search service."""

from __future__ import annotations

import httpx
import pytest

from context_engine.exceptions import BackendStatusError, ConfigurationError, NotIndexedError
from context_engine.schemas.config import AgentConfig
from context_engine.schemas.search import NO_CONTEXT_FOUND
from context_engine.services.search import SearchService
from tests.fakes import FakeBackend, FakeBlobRegistry

ROOT = '/work/project'


def _service(backend: FakeBackend, names: list[str] | None = None) -> SearchService:
    registry = FakeBlobRegistry({ROOT: names} if names else None)
    return SearchService(registry, client_factory=backend.client_factory)


class TestSearch:
    @pytest.mark.asyncio
    async def test_returns_formatted_retrieval(self, config: AgentConfig) -> None:
        backend = FakeBackend(retrieval_text='src/a.py: def handler(): ...')
        text = await _service(backend, ['n1', 'n2']).search(config, ROOT, 'handler')

        assert text == 'src/a.py: def handler(): ...'
        [request] = backend.retrievals
        assert request['information_request'] == 'handler'
        assert request['blobs']['added_blobs'] == ['n1', 'n2']

    @pytest.mark.asyncio
    async def test_empty_retrieval_message(self, config: AgentConfig) -> None:
        backend = FakeBackend(retrieval_text='')
        assert await _service(backend, ['n1']).search(config, ROOT, 'q') == NO_CONTEXT_FOUND

    @pytest.mark.asyncio
    async def test_whitespace_retrieval_returned_as_is(self, config: AgentConfig) -> None:
        backend = FakeBackend(retrieval_text='\n')
        assert await _service(backend, ['n1']).search(config, ROOT, 'q') == '\n'

    @pytest.mark.asyncio
    async def test_not_indexed(self, config: AgentConfig) -> None:
        backend = FakeBackend()
        with pytest.raises(NotIndexedError):
            await _service(backend).search(config, ROOT, 'q')
        assert backend.retrievals == []

    @pytest.mark.asyncio
    async def test_missing_token(self, config: AgentConfig) -> None:
        with pytest.raises(ConfigurationError):
            await _service(FakeBackend(), ['n1']).search(config.model_copy(update={'token': None}), ROOT, 'q')

    @pytest.mark.asyncio
    async def test_retries_then_raises_on_persistent_503(self, config: AgentConfig) -> None:
        backend = FakeBackend(retrieval_status=503)
        with pytest.raises(BackendStatusError):
            await _service(backend, ['n1']).search(config, ROOT, 'q')
        assert len(backend.retrievals) == 3
        assert backend.sleeps == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_transport_error_surfaces(self, config: AgentConfig) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.UnsupportedProtocol('no')

        backend = FakeBackend()
        backend.handler = refuse  # type: ignore[method-assign]
        with pytest.raises(httpx.UnsupportedProtocol):
            await _service(backend, ['n1']).search(config, ROOT, 'q')
