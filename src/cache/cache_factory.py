# src/cache/cache_factory.py — v1
"""Factory for cache store and round cache instantiation."""

from __future__ import annotations

from codebrief.cache.base_cache_store import BaseCacheStore
from codebrief.cache.round_cache import RoundCache
from codebrief.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to JSON backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    if settings is None:
        settings = Settings()
    backend = settings.cache_backend

    if backend == "json":
        from codebrief.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=settings.cache_path)

    if backend == "sqlite":
        from codebrief.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.cache_path / "rounds.db")

    if backend == "memory":
        from codebrief.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    raise ValueError(f"Unsupported cache backend: {backend!r}")


def create_round_cache(settings: Settings | None = None) -> RoundCache:
    """Build a RoundCache over the configured backend."""
    if settings is None:
        settings = Settings()
    return RoundCache(
        store=create_cache_store(settings),
        schema_version=settings.cache_schema_version,
        project_root=settings.project_root,
    )
