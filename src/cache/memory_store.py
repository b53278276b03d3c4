# src/cache/memory_store.py — v1
"""In-memory cache store (CACHE_BACKEND=memory), used by tests and dry runs."""

from __future__ import annotations

from codebrief.cache.base_cache_store import BaseCacheStore


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed store. Contents live as long as the instance."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def list_keys(self) -> list[str]:
        return sorted(self._data)
