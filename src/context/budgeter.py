# src/context/budgeter.py — v1
"""Fit prompt content candidates into a round's token budget.

Greedy top-down selection over the deterministic ranking from
context/scorer.py:
  - everything is included whole when the total fits
  - otherwise each candidate is included whole if it fits the remaining
    budget, else truncated to the remainder when its class allows it,
    else excluded
Same candidates and budget always produce the same selection, which keeps
prompts (and the cache keys upstream of provider calls) reproducible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from codebrief.context.scorer import is_lock_file, rank_candidates
from codebrief.context.token_counter import CHARS_PER_TOKEN, estimate_tokens
from codebrief.core.models import ContentCandidate, ContentSelection, PackedContent

logger = logging.getLogger(__name__)

TokenEstimator = Callable[[str], int]


def select_content(
    candidates: list[ContentCandidate],
    budget_tokens: int,
    estimate: TokenEstimator = estimate_tokens,
) -> ContentSelection:
    """Select, truncate or exclude candidates to fit budget_tokens.

    Args:
        candidates: Content competing for prompt space.
        budget_tokens: Content budget of the round.
        estimate: Token estimator for candidates without a precomputed
            estimate and for truncated text.

    Returns:
        ContentSelection whose used_tokens never exceeds budget_tokens.
    """
    selection = ContentSelection(budget_tokens=max(0, budget_tokens))

    for candidate in candidates:
        if is_lock_file(candidate.path):
            selection.excluded.append(
                PackedContent(path=candidate.path, tier="skip", rank=len(candidates))
            )

    ranked = rank_candidates(candidates)
    costs = [_cost(c, estimate) for c, _ in ranked]

    if sum(costs) <= selection.budget_tokens:
        for rank, ((candidate, score), cost) in enumerate(zip(ranked, costs)):
            selection.included.append(
                PackedContent(
                    path=candidate.path, content=candidate.content,
                    tokens=cost, score=score, rank=rank, tier="full",
                )
            )
        selection.used_tokens = sum(costs)
        return selection

    remaining = selection.budget_tokens
    for rank, ((candidate, score), cost) in enumerate(zip(ranked, costs)):
        if cost <= remaining:
            selection.included.append(
                PackedContent(
                    path=candidate.path, content=candidate.content,
                    tokens=cost, score=score, rank=rank, tier="full",
                )
            )
            remaining -= cost
            continue

        if candidate.truncatable and remaining > 0:
            text = truncate_to_fit(candidate.content, remaining, estimate)
            if text:
                tokens = estimate(text)
                whole = text == candidate.content
                (selection.included if whole else selection.truncated).append(
                    PackedContent(
                        path=candidate.path, content=text, tokens=tokens,
                        score=score, rank=rank, tier="full" if whole else "truncated",
                    )
                )
                remaining -= tokens
                continue

        selection.excluded.append(
            PackedContent(path=candidate.path, score=score, rank=rank, tier="skip")
        )

    selection.used_tokens = selection.budget_tokens - remaining
    logger.debug(
        "Content selection: %d full, %d truncated, %d excluded (%d%% of %d tokens)",
        len(selection.included), len(selection.truncated), len(selection.excluded),
        selection.utilization_percent, selection.budget_tokens,
    )
    return selection


def truncate_to_fit(
    content: str,
    max_tokens: int,
    estimate: TokenEstimator = estimate_tokens,
) -> str:
    """Keep the leading lines of content that fit max_tokens.

    An omission marker is appended when lines are dropped. If not even the
    first line fits, it is cut at a character boundary. Returns "" when
    nothing useful fits.
    """
    if max_tokens <= 0:
        return ""
    if estimate(content) <= max_tokens:
        return content

    lines = content.split("\n")
    kept: list[str] = []
    for line in lines:
        candidate = kept + [line]
        marker = _marker(len(lines) - len(candidate))
        if estimate("\n".join(candidate + [marker])) > max_tokens:
            break
        kept = candidate

    if kept:
        return "\n".join(kept + [_marker(len(lines) - len(kept))])

    marker = _marker(len(lines) - 1) if len(lines) > 1 else "..."
    chars = max_tokens * CHARS_PER_TOKEN - len(marker) - 1
    if chars <= 0:
        return ""
    text = f"{lines[0][:chars]}\n{marker}"
    return text if estimate(text) <= max_tokens else ""


def _marker(omitted_lines: int) -> str:
    return f"... ({omitted_lines} more lines truncated)"


def _cost(candidate: ContentCandidate, estimate: TokenEstimator) -> int:
    if candidate.estimated_tokens is not None:
        return candidate.estimated_tokens
    return estimate(candidate.content)
