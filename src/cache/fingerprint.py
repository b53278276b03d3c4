# src/cache/fingerprint.py — v1
"""Analysis fingerprinting and canonical hashing helpers.

The analysis fingerprint is the invalidation root of the round cache:
a SHA-256 digest over the discovered files' paths and content hashes.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

from codebrief.core.models import FileRecord


def compute_fingerprint(files: Iterable[FileRecord]) -> str:
    """Compute a permutation-invariant digest of the analyzed file set.

    Duplicate (path, content_hash) pairs collapse to one. Pairs are sorted
    by path, joined as ``path:content_hash`` lines and hashed with SHA-256.

    Args:
        files: File records from the discovery collaborator, any order.

    Returns:
        Hex SHA-256 digest.
    """
    pairs = sorted({(f.path, f.content_hash) for f in files})
    data = "\n".join(f"{path}:{content_hash}" for path, content_hash in pairs)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hash_content(data: bytes | str) -> str:
    """SHA-256 of raw file content."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def canonical_json(value: Any) -> str:
    """Serialize to JSON with sorted keys and compact separators.

    Pydantic models are dumped in JSON mode first so the output only
    depends on field values.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )


def digest(value: Any) -> str:
    """SHA-256 over the canonical JSON form of a value."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
