# src/cache/models.py — v1
"""Cache domain models: RoundCacheEntry."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class RoundCacheEntry(BaseModel):
    """Persisted result of one round, keyed by its content-derived hash."""

    schema_version: int
    hash: str
    round_id: int
    model: str
    result: Any
    created_at: datetime
