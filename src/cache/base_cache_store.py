# src/cache/base_cache_store.py — v1
"""Abstract key-value store interface behind the round cache.

Stores deal in opaque serialized text; parsing, versioning and hash
checks live in RoundCache so every backend gets the same semantics.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored text for key, or None if absent."""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store value under key. Must be all-or-nothing."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every stored key."""

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List stored keys without reading their values."""

    @property
    def location(self) -> Path | None:
        """Filesystem location of the store, if it has one."""
        return None

    def close(self) -> None:
        """Release any resources held by the store."""
