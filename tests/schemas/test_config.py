"""Tests for agent configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from context_engine.exceptions import ConfigurationError
from context_engine.schemas.config import AgentConfig, load_config, save_config


class TestNormalized:
    @pytest.mark.parametrize(
        'raw, expected',
        [
            ('backend.test', 'http://backend.test'),
            ('https://backend.test/', 'https://backend.test'),
            ('  http://backend.test:8080///  ', 'http://backend.test:8080'),
        ],
    )
    def test_base_url(self, raw: str, expected: str) -> None:
        assert AgentConfig(base_url=raw).normalized().base_url == expected

    def test_unset_base_url_untouched(self) -> None:
        assert AgentConfig().normalized().base_url is None


class TestValidation:
    def test_indexing_accepts_full_url(self) -> None:
        config = AgentConfig(base_url='https://backend.test', token='t')
        assert config.validate_for_indexing() == ('https://backend.test', 't')

    @pytest.mark.parametrize(
        'base_url, token',
        [
            (None, 't'),
            ('https://backend.test', None),
            ('https://backend.test', '  '),
            ('backend.test', 't'),
            ('ftp://backend.test', 't'),
        ],
    )
    def test_indexing_rejects(self, base_url: str | None, token: str | None) -> None:
        with pytest.raises(ConfigurationError):
            AgentConfig(base_url=base_url, token=token).validate_for_indexing()

    def test_search_only_requires_presence(self) -> None:
        assert AgentConfig(base_url='backend.test', token='t').validate_for_search() == ('backend.test', 't')

    @pytest.mark.parametrize('wait_range', [(3, 1), (-1, 2)])
    def test_rejects_bad_wait_range(self, wait_range: tuple[int, int]) -> None:
        with pytest.raises(pydantic.ValidationError):
            AgentConfig(smart_wait_range=wait_range)

    def test_summary_mentions_collection_rules(self) -> None:
        summary = AgentConfig(batch_size=7, max_lines_per_blob=50).summary()
        assert 'batch_size=7' in summary
        assert 'max_lines_per_blob=50' in summary


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / 'config.json')
        assert config.batch_size == 10
        assert config.max_lines_per_blob == 800
        assert config.smart_wait_range == (1, 5)

    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / 'nested' / 'config.json'
        save_config(AgentConfig(base_url='http://b', token='t', smart_wait_range=None), path)
        loaded = load_config(path)
        assert loaded.base_url == 'http://b'
        assert loaded.smart_wait_range is None

    def test_invalid_file_raises_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / 'config.json'
        path.write_text('{"batch_size": 0}')
        with pytest.raises(ConfigurationError):
            load_config(path)
