# src/cache/json_store.py — v1
"""JSON file-based cache store (default CACHE_BACKEND=json).

Stores one ``<key>.json`` file per entry under the cache directory.
Writes go to a temporary sibling file and are moved into place with
os.replace, so a reader sees either the previous entry or the new one.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path

from codebrief.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using one JSON file per key."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()

    @property
    def location(self) -> Path:
        return self._root

    async def get(self, key: str) -> str | None:
        """Read the raw entry text. OSError propagates to the caller."""
        path = self._entry_path(key)
        if not path.exists():
            return None
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def put(self, key: str, value: str) -> None:
        """Atomically write an entry, creating the directory if needed."""
        await asyncio.to_thread(self._write_atomic, self._entry_path(key), value)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    async def clear(self) -> None:
        if self._root.exists():
            await asyncio.to_thread(shutil.rmtree, self._root, ignore_errors=True)
            logger.debug("Removed cache directory %s", self._root)

    async def list_keys(self) -> list[str]:
        if not self._root.is_dir():
            return []
        try:
            return sorted(
                p.name[: -len(_SUFFIX)]
                for p in self._root.iterdir()
                if p.is_file() and p.name.endswith(_SUFFIX)
            )
        except OSError as e:
            logger.warning("Failed to list cache directory %s: %s", self._root, e)
            return []

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}{_SUFFIX}"

    @staticmethod
    def _write_atomic(path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
