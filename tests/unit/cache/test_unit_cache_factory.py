# tests/unit/cache/test_unit_cache_factory.py — v1
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from codebrief.cache.cache_factory import create_cache_store, create_round_cache
from codebrief.cache.json_store import JsonCacheStore
from codebrief.cache.memory_store import MemoryCacheStore
from codebrief.cache.round_cache import RoundCache
from codebrief.cache.sqlite_store import SqliteCacheStore
from codebrief.config.settings import Settings


class TestCreateCacheStore:
    def test_json_default(self, tmp_path):
        store = create_cache_store(Settings(_env_file=None, project_root=tmp_path))
        assert isinstance(store, JsonCacheStore)
        assert store.location == tmp_path / ".codebrief" / "cache" / "rounds"

    def test_sqlite(self, tmp_path):
        store = create_cache_store(
            Settings(_env_file=None, project_root=tmp_path, cache_backend="sqlite")
        )
        assert isinstance(store, SqliteCacheStore)
        assert store.location == tmp_path / ".codebrief" / "cache" / "rounds"

    def test_memory(self):
        store = create_cache_store(Settings(_env_file=None, cache_backend="memory"))
        assert isinstance(store, MemoryCacheStore)

    def test_absolute_cache_dir(self, tmp_path):
        store = create_cache_store(
            Settings(_env_file=None, project_root=tmp_path / "proj", cache_dir=tmp_path / "c")
        )
        assert store.location == tmp_path / "c"


class TestCreateRoundCache:
    def test_wires_schema_version(self, tmp_path):
        cache = create_round_cache(
            Settings(_env_file=None, project_root=tmp_path, cache_schema_version=7)
        )
        assert isinstance(cache, RoundCache)
        assert cache.schema_version == 7
        assert isinstance(cache.store, JsonCacheStore)
