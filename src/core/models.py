# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Other modules import these types from here rather than redefining them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# === INPUTS ===


class FileRecord(BaseModel):
    """One analyzed file as supplied by the file-discovery collaborator."""

    model_config = ConfigDict(frozen=True)

    path: str
    content_hash: str
    size: int = 0


class RoundDefinition(BaseModel):
    """Static declaration of an analysis round and its upstream rounds."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    depends_on: frozenset[int] = Field(default_factory=frozenset)

    @property
    def label(self) -> str:
        return self.name or f"Round {self.id}"


# === ROUND RESULTS ===


class RoundUsage(BaseModel):
    """Token consumption reported by the provider for one round."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class RoundResult(BaseModel):
    """Output of one successful round execution. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    data: dict[str, Any]
    usage: RoundUsage = Field(default_factory=RoundUsage)
    model: str
    duration_ms: int = 0


class ClaimCheck(BaseModel):
    """File references in a round payload checked against the scanned files."""

    validated: int = 0
    dropped: list[str] = Field(default_factory=list)
    total: int = 0

    @property
    def drop_rate(self) -> float:
        return len(self.dropped) / self.total if self.total else 0.0


class QualityMetrics(BaseModel):
    """Heuristic specificity of a round payload."""

    text_length: int = 0
    code_references: int = 0
    specificity: float = 0.0
    has_file_paths: bool = False
    is_acceptable: bool = True


class RoundStatus(str, Enum):
    """Lifecycle states of a round within one run."""

    PENDING = "pending"
    RUNNING = "running"
    CACHED = "cached"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (RoundStatus.PENDING, RoundStatus.RUNNING)

    @property
    def has_result(self) -> bool:
        return self in (RoundStatus.CACHED, RoundStatus.SUCCEEDED)


class RoundOutcome(BaseModel):
    """Final state of a round after a run, as reported to the renderer."""

    round_id: int
    name: str = ""
    status: RoundStatus = RoundStatus.PENDING
    result: RoundResult | None = None
    cache_key: str | None = None
    result_hash: str | None = None
    error: str | None = None
    blocked_by: list[int] = Field(default_factory=list)
    elapsed_ms: int = 0
    retried: bool = False
    claims: ClaimCheck | None = None
    quality: QualityMetrics | None = None


class RunReport(BaseModel):
    """Status map returned by the orchestrator for a full run."""

    fingerprint: str = ""
    model: str = ""
    outcomes: dict[int, RoundOutcome] = Field(default_factory=dict)
    waves: list[list[int]] = Field(default_factory=list)
    elapsed_ms: int = 0
    provider_calls: int = 0
    cache_migrated: bool = False

    def results(self) -> dict[int, RoundResult | RoundStatus]:
        """Map each round to its result, or to its status when no result exists."""
        return {
            round_id: outcome.result if outcome.result is not None else outcome.status
            for round_id, outcome in sorted(self.outcomes.items())
        }

    def by_status(self, status: RoundStatus) -> list[int]:
        return sorted(r for r, o in self.outcomes.items() if o.status == status)

    @property
    def cached(self) -> list[int]:
        return self.by_status(RoundStatus.CACHED)

    @property
    def succeeded(self) -> list[int]:
        return self.by_status(RoundStatus.SUCCEEDED)

    @property
    def failed(self) -> list[int]:
        return self.by_status(RoundStatus.FAILED)

    @property
    def blocked(self) -> list[int]:
        return self.by_status(RoundStatus.BLOCKED)

    @property
    def cancelled(self) -> list[int]:
        return self.by_status(RoundStatus.CANCELLED)

    @property
    def is_complete(self) -> bool:
        """True when every round produced a result (cached or executed)."""
        return all(o.status.has_result for o in self.outcomes.values())


# === CONTEXT BUDGETING ===


class ContentCandidate(BaseModel):
    """A piece of content competing for space in a round prompt.

    The ranking signals (entry point, importers, exports, git activity,
    markers) are computed by the static-analysis collaborator; the budgeter
    only reads them.
    """

    path: str
    content: str
    estimated_tokens: int | None = None
    truncatable: bool = True
    pinned: bool = False
    boost: int = 0
    importer_count: int = 0
    export_count: int = 0
    git_changes: int = 0
    has_edge_case_markers: bool = False


class TokenBudget(BaseModel):
    """Per-round token allocation derived from the model context window."""

    total: int
    prompt_overhead: int
    output_reserve: int
    content_budget: int


class PackedContent(BaseModel):
    """A candidate after budgeting: whole, truncated, or excluded."""

    path: str
    content: str = ""
    tokens: int = 0
    score: int = 0
    rank: int = 0
    tier: str = "full"


class ContentSelection(BaseModel):
    """Result of fitting candidates into a token budget."""

    included: list[PackedContent] = Field(default_factory=list)
    truncated: list[PackedContent] = Field(default_factory=list)
    excluded: list[PackedContent] = Field(default_factory=list)
    used_tokens: int = 0
    budget_tokens: int = 0

    @property
    def utilization_percent(self) -> int:
        if self.budget_tokens <= 0:
            return 0
        return round(self.used_tokens / self.budget_tokens * 100)

    @property
    def packed(self) -> list[PackedContent]:
        """Included and truncated items in rank order."""
        return sorted(self.included + self.truncated, key=lambda p: p.rank)


class RoundContext(BaseModel):
    """Compressed digest of a dependency round, injected into later prompts."""

    round_id: int
    modules: list[str] = Field(default_factory=list)
    findings: list[str] = Field(default_factory=list)
    relationships: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)
    token_count: int = 0
