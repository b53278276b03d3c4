# src/cache/round_cache.py — v1
"""Content-hash-based cache for round results.

Enables crash recovery by persisting completed round outputs. A stored
entry is only reused when its schema version and its hash match; the
hash is derived from the round id, model, analysis fingerprint and the
result hashes of upstream rounds, so any upstream change cascades.

Failure policy:
  - missing, stale or corrupted entries are misses (corruption is logged
    at WARNING so a systematic serialization bug stays visible)
  - a schema-version mismatch wipes the whole cache once per instance
  - write failures raise CacheWriteError
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from codebrief.cache.base_cache_store import BaseCacheStore
from codebrief.cache.fingerprint import canonical_json, digest
from codebrief.cache.models import RoundCacheEntry
from codebrief.cache.vcs_ignore import ensure_gitignored, ignore_pattern_for
from codebrief.core.models import RoundResult

logger = logging.getLogger(__name__)

# Bump when the persisted entry shape changes.
CACHE_SCHEMA_VERSION = 2

_KEY_RE = re.compile(r"^round-(\d+)$")


class CacheWriteError(Exception):
    """Raised when a computed round result could not be persisted."""

    def __init__(self, round_id: int, cause: BaseException) -> None:
        self.round_id = round_id
        self.cause = cause
        super().__init__(f"Failed to write cache entry for round {round_id}: {cause}")


class RoundCache:
    """Round result cache over a key-value store.

    Args:
        store: Backing key-value store.
        schema_version: Current entry schema version.
        project_root: Root whose .gitignore should exclude the store location.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        schema_version: int = CACHE_SCHEMA_VERSION,
        project_root: Path | str = ".",
    ) -> None:
        self._store = store
        self._schema_version = schema_version
        self._project_root = Path(project_root)
        self._migration_handled = False
        self._ignore_checked = False

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    @property
    def schema_version(self) -> int:
        return self._schema_version

    @property
    def was_migrated(self) -> bool:
        """Whether this instance wiped the cache after a version mismatch."""
        return self._migration_handled

    # ------------------------------------------------------------------
    # Key derivation
    # ------------------------------------------------------------------

    @staticmethod
    def round_hash(
        round_id: int,
        model: str,
        fingerprint: str,
        dependency_result_hashes: Iterable[str] = (),
    ) -> str:
        """Deterministic cache key for one round.

        Dependency hashes are sorted so declaration order does not matter.
        """
        payload = {
            "round_id": round_id,
            "model": model,
            "fingerprint": fingerprint,
            "dependency_result_hashes": sorted(dependency_result_hashes),
        }
        return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()

    @staticmethod
    def result_hash(result: RoundResult | dict[str, Any]) -> str:
        """Digest of a round's payload, threaded into dependents' keys."""
        data = result.data if isinstance(result, RoundResult) else result
        return digest(data)

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def get(self, round_id: int, expected_hash: str) -> Any | None:
        """Return the cached result if present, current and hash-matching.

        Returns:
            The stored result, or None on miss/stale/corrupted/migrated.
        """
        key = _key(round_id)
        try:
            raw = await self._store.get(key)
        except Exception as e:
            logger.warning("Unreadable cache entry for round %d: %s", round_id, e)
            return None
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Corrupted cache entry for round %d: %s", round_id, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Corrupted cache entry for round %d: not an object", round_id)
            return None

        stored_version = data.get("schema_version", data.get("version"))
        if not isinstance(stored_version, int):
            logger.warning("Corrupted cache entry for round %d: no schema version", round_id)
            return None
        if stored_version != self._schema_version:
            await self._migrate(round_id, stored_version)
            return None

        try:
            entry = RoundCacheEntry.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Corrupted cache entry for round %d: %d validation errors",
                round_id, e.error_count(),
            )
            return None

        if entry.hash != expected_hash:
            logger.debug("Stale cache entry for round %d", round_id)
            return None

        return entry.result

    async def set(self, round_id: int, hash: str, result: Any, model: str) -> None:
        """Persist a round result.

        Raises:
            CacheWriteError: If the entry cannot be serialized or written.
        """
        try:
            entry = RoundCacheEntry(
                schema_version=self._schema_version,
                hash=hash,
                round_id=round_id,
                model=model,
                result=result,
                created_at=datetime.now(timezone.utc),
            )
            await self._store.put(_key(round_id), entry.model_dump_json(indent=2))
        except Exception as e:
            raise CacheWriteError(round_id, e) from e

        self._ensure_ignored()

    async def clear(self) -> None:
        """Remove all cached round entries."""
        await self._store.clear()

    async def list_completed(self) -> list[int]:
        """Round ids with an entry on storage, ascending. Payloads are not read."""
        keys = await self._store.list_keys()
        rounds = []
        for key in keys:
            match = _KEY_RE.match(key)
            if match:
                rounds.append(int(match.group(1)))
        return sorted(rounds)

    def close(self) -> None:
        """Release the backing store."""
        self._store.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _migrate(self, round_id: int, stored_version: Any) -> None:
        if self._migration_handled:
            return
        self._migration_handled = True
        logger.info(
            "Cache schema changed (round %d has version %s, current %d); clearing cache",
            round_id, stored_version, self._schema_version,
        )
        await self.clear()

    def _ensure_ignored(self) -> None:
        """Add the store location to .gitignore, at most once per instance."""
        if self._ignore_checked:
            return
        self._ignore_checked = True

        location = self._store.location
        if location is None:
            return
        pattern = ignore_pattern_for(location, self._project_root)
        if pattern is None:
            return
        try:
            ensure_gitignored(self._project_root, pattern)
        except (OSError, ValueError) as e:
            logger.debug("Could not update .gitignore: %s", e)


def _key(round_id: int) -> str:
    return f"round-{round_id}"
