# src/tracking/usage_tracker.py — v1
"""Per-round token usage tracker with budget warnings.

Records token consumption of each executed round and warns when input
tokens reach the configured share of the round's context budget.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class RoundTokenUsage(BaseModel):
    """Token accounting for one executed round."""

    round_id: int
    input_tokens: int
    output_tokens: int
    content_tokens: int = 0
    budget_tokens: int = 0

    @property
    def utilization(self) -> float:
        if self.budget_tokens <= 0:
            return 0.0
        return self.input_tokens / self.budget_tokens


class TokenUsageTracker:
    """Accumulates RoundTokenUsage records for one run."""

    def __init__(self, warn_threshold: float = 0.85) -> None:
        self._rounds: list[RoundTokenUsage] = []
        self._warn_threshold = warn_threshold

    def record_round(self, usage: RoundTokenUsage) -> None:
        """Record usage of a round, warning above the threshold."""
        self._rounds.append(usage)
        if usage.utilization >= self._warn_threshold:
            logger.warning(
                "Round %d: %d%% of token budget used (%d/%d tokens)",
                usage.round_id,
                round(usage.utilization * 100),
                usage.input_tokens,
                usage.budget_tokens,
            )
        logger.debug(
            "Round %d tokens: input=%d, output=%d, content=%d",
            usage.round_id, usage.input_tokens, usage.output_tokens, usage.content_tokens,
        )

    @property
    def rounds(self) -> list[RoundTokenUsage]:
        return list(self._rounds)

    def total_usage(self) -> tuple[int, int]:
        """Return (input_tokens, output_tokens) across recorded rounds."""
        return (
            sum(r.input_tokens for r in self._rounds),
            sum(r.output_tokens for r in self._rounds),
        )

    def to_summary(self) -> str:
        """Multi-line summary suitable for terminal display."""
        if not self._rounds:
            return "No rounds recorded."
        lines = ["Token Usage Summary", ""]
        for r in sorted(self._rounds, key=lambda u: u.round_id):
            util = f"{round(r.utilization * 100)}%" if r.budget_tokens > 0 else "N/A"
            lines.append(
                f"  Round {r.round_id}: {r.input_tokens:,} input, "
                f"{r.output_tokens:,} output ({util} budget)"
            )
        total_in, total_out = self.total_usage()
        lines.append("")
        lines.append(
            f"  Total: {total_in:,} input, {total_out:,} output "
            f"across {len(self._rounds)} round(s)"
        )
        return "\n".join(lines)
