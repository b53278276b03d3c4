# tests/unit/cache/test_round_cache.py — v1
"""Tests for cache/round_cache.py — keying, hits, staleness, corruption, migration."""

from __future__ import annotations

import json
import logging

import pytest

from codebrief.cache.json_store import JsonCacheStore
from codebrief.cache.memory_store import MemoryCacheStore
from codebrief.cache.round_cache import CacheWriteError, RoundCache
from codebrief.core.models import RoundResult


class _FailingStore(MemoryCacheStore):
    async def put(self, key: str, value: str) -> None:
        raise OSError("disk full")


class _ClosingStore(MemoryCacheStore):
    closed = False

    def close(self) -> None:
        self.closed = True


class TestRoundHash:
    def test_deterministic(self):
        a = RoundCache.round_hash(2, "m", "fp", ["h1"])
        b = RoundCache.round_hash(2, "m", "fp", ["h1"])
        assert a == b
        assert len(a) == 64

    def test_dependency_order_invariant(self):
        assert RoundCache.round_hash(4, "m", "fp", ["x", "y", "z"]) == RoundCache.round_hash(
            4, "m", "fp", ["z", "x", "y"]
        )

    @pytest.mark.parametrize(
        "args",
        [
            (2, "m", "fp", ["h1"]),
            (1, "other-model", "fp", ["h1"]),
            (1, "m", "other-fp", ["h1"]),
            (1, "m", "fp", ["h2"]),
            (1, "m", "fp", []),
        ],
    )
    def test_every_input_changes_the_key(self, args):
        base = RoundCache.round_hash(1, "m", "fp", ["h1"])
        assert RoundCache.round_hash(*args) != base

    def test_result_hash_ignores_usage_and_timing(self):
        a = RoundResult(data={"x": 1}, model="m", duration_ms=10)
        b = RoundResult(data={"x": 1}, model="m", duration_ms=999)
        assert RoundCache.result_hash(a) == RoundCache.result_hash(b)
        assert RoundCache.result_hash(a) == RoundCache.result_hash({"x": 1})

    def test_result_hash_tracks_payload(self):
        assert RoundCache.result_hash({"x": 1}) != RoundCache.result_hash({"x": 2})


class TestGetSet:
    @pytest.mark.asyncio
    async def test_set_then_get_hit(self, memory_cache):
        await memory_cache.set(1, "h", {"data": {"a": 1}}, "m")
        assert await memory_cache.get(1, "h") == {"data": {"a": 1}}

    @pytest.mark.asyncio
    async def test_missing_is_miss(self, memory_cache):
        assert await memory_cache.get(1, "h") is None

    @pytest.mark.asyncio
    async def test_hash_mismatch_is_miss(self, memory_cache):
        await memory_cache.set(1, "old", {"a": 1}, "m")
        assert await memory_cache.get(1, "new") is None

    @pytest.mark.asyncio
    async def test_overwrite_keeps_latest(self, memory_cache):
        await memory_cache.set(1, "h1", {"v": 1}, "m")
        await memory_cache.set(1, "h2", {"v": 2}, "m")
        assert await memory_cache.get(1, "h1") is None
        assert await memory_cache.get(1, "h2") == {"v": 2}

    @pytest.mark.asyncio
    async def test_entry_shape_on_storage(self, memory_cache):
        await memory_cache.set(3, "h", {"v": 1}, "model-x")
        raw = json.loads(await memory_cache.store.get("round-3"))
        assert raw["schema_version"] == 2
        assert raw["hash"] == "h"
        assert raw["round_id"] == 3
        assert raw["model"] == "model-x"
        assert raw["result"] == {"v": 1}
        assert "created_at" in raw

    @pytest.mark.asyncio
    async def test_write_failure_raises(self):
        cache = RoundCache(_FailingStore())
        with pytest.raises(CacheWriteError) as exc_info:
            await cache.set(2, "h", {"v": 1}, "m")
        assert exc_info.value.round_id == 2
        assert isinstance(exc_info.value.cause, OSError)

    @pytest.mark.asyncio
    async def test_list_completed(self, memory_cache):
        await memory_cache.set(3, "h", {}, "m")
        await memory_cache.set(1, "h", {}, "m")
        await memory_cache.store.put("unrelated", "{}")
        assert await memory_cache.list_completed() == [1, 3]

    @pytest.mark.asyncio
    async def test_clear(self, memory_cache):
        await memory_cache.set(1, "h", {}, "m")
        await memory_cache.clear()
        assert await memory_cache.list_completed() == []

    def test_close_releases_store(self):
        store = _ClosingStore()
        RoundCache(store).close()
        assert store.closed


class TestCorruption:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2, 3]",
            '{"hash": "h", "result": {}}',
            '{"schema_version": 2, "hash": "h"}',
        ],
    )
    async def test_corrupted_entry_is_miss_with_warning(self, memory_cache, caplog, raw):
        await memory_cache.store.put("round-1", raw)
        with caplog.at_level(logging.WARNING, logger="codebrief.cache.round_cache"):
            assert await memory_cache.get(1, "h") is None
        assert any(
            r.levelno == logging.WARNING and "round 1" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_corruption_does_not_wipe_other_entries(self, memory_cache):
        await memory_cache.set(2, "h2", {"v": 2}, "m")
        await memory_cache.store.put("round-1", "garbage")
        assert await memory_cache.get(1, "h1") is None
        assert await memory_cache.get(2, "h2") == {"v": 2}

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_miss(self, tmp_path, caplog):
        store = JsonCacheStore(tmp_path / "cache")
        (tmp_path / "cache" / "round-1.json").mkdir(parents=True)
        cache = RoundCache(store, project_root=tmp_path)
        with caplog.at_level(logging.WARNING):
            assert await cache.get(1, "h") is None
        assert "Unreadable" in caplog.text


class TestMigration:
    @pytest.mark.asyncio
    async def test_version_mismatch_wipes_once(self, caplog):
        store = MemoryCacheStore()
        old = RoundCache(store, schema_version=1)
        await old.set(1, "h1", {}, "m")
        await old.set(2, "h2", {}, "m")

        cache = RoundCache(store, schema_version=2)
        with caplog.at_level(logging.INFO, logger="codebrief.cache.round_cache"):
            assert await cache.get(1, "h1") is None
        assert cache.was_migrated is True
        assert await store.list_keys() == []
        assert "Cache schema changed" in caplog.text

        # Entries written after the wipe survive further mismatches.
        await cache.set(1, "new", {"v": 1}, "m")
        await store.put("round-2", json.dumps({"schema_version": 1, "hash": "x"}))
        assert await cache.get(2, "x") is None
        assert await cache.get(1, "new") == {"v": 1}

    @pytest.mark.asyncio
    async def test_legacy_version_key_is_recognized(self, memory_cache):
        await memory_cache.store.put("round-1", json.dumps({"version": 1, "hash": "h"}))
        assert await memory_cache.get(1, "h") is None
        assert memory_cache.was_migrated is True

    @pytest.mark.asyncio
    async def test_matching_version_does_not_migrate(self, memory_cache):
        await memory_cache.set(1, "h", {}, "m")
        await memory_cache.get(1, "h")
        assert memory_cache.was_migrated is False


class TestGitignore:
    @pytest.mark.asyncio
    async def test_first_write_adds_rule(self, json_cache, tmp_path):
        await json_cache.set(1, "h", {}, "m")
        assert (tmp_path / ".gitignore").read_text() == ".codebrief/cache\n"

    @pytest.mark.asyncio
    async def test_rule_added_once(self, json_cache, tmp_path):
        await json_cache.set(1, "h", {}, "m")
        (tmp_path / ".gitignore").write_text("node_modules\n")
        await json_cache.set(2, "h", {}, "m")
        assert (tmp_path / ".gitignore").read_text() == "node_modules\n"

    @pytest.mark.asyncio
    async def test_existing_parent_rule_is_respected(self, json_cache, tmp_path):
        (tmp_path / ".gitignore").write_text("dist\n.codebrief/\n")
        await json_cache.set(1, "h", {}, "m")
        assert (tmp_path / ".gitignore").read_text() == "dist\n.codebrief/\n"

    @pytest.mark.asyncio
    async def test_memory_store_never_touches_gitignore(self, tmp_path):
        cache = RoundCache(MemoryCacheStore(), project_root=tmp_path)
        await cache.set(1, "h", {}, "m")
        assert not (tmp_path / ".gitignore").exists()

    @pytest.mark.asyncio
    async def test_non_utf8_gitignore_keeps_bytes(self, json_cache, tmp_path):
        (tmp_path / ".gitignore").write_bytes(b"# caf\xe9 build output\ndist\n")
        await json_cache.set(1, "h", {"ok": True}, "m")
        assert await json_cache.get(1, "h") == {"ok": True}
        assert (tmp_path / ".gitignore").read_bytes() == (
            b"# caf\xe9 build output\ndist\n.codebrief/cache\n"
        )

    @pytest.mark.asyncio
    async def test_unreadable_gitignore_does_not_fail_write(self, json_cache, tmp_path):
        (tmp_path / ".gitignore").mkdir()
        await json_cache.set(1, "h", {"ok": True}, "m")
        assert await json_cache.get(1, "h") == {"ok": True}

    @pytest.mark.asyncio
    async def test_gitignore_value_error_does_not_fail_write(
        self, json_cache, tmp_path, monkeypatch
    ):
        def broken(project_root, pattern):
            raise UnicodeEncodeError("utf-8", "\udce9", 0, 1, "surrogates not allowed")

        monkeypatch.setattr("codebrief.cache.round_cache.ensure_gitignored", broken)
        await json_cache.set(1, "h", {"ok": True}, "m")
        assert await json_cache.get(1, "h") == {"ok": True}
