# src/context/token_counter.py — v1
"""Token estimation and per-round budget allocation."""

from __future__ import annotations

import logging
import math

from codebrief.config.settings import Settings
from codebrief.core.models import TokenBudget

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count as ceil(chars / 4).

    Deterministic and monotonic in text length, so selections made from
    it are reproducible across runs on unchanged input.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def compute_token_budget(
    max_context_tokens: int,
    prompt_overhead: int = 3000,
    output_reserve: int = 4096,
    safety_margin: float = 0.9,
) -> TokenBudget:
    """Compute the content budget of one round.

    Reserves room for instructions and the expected output, then keeps a
    safety margin of the remainder.

    Args:
        max_context_tokens: Model context window.
        prompt_overhead: Tokens reserved for instructions and prior-round context.
        output_reserve: Tokens reserved for the model's answer.
        safety_margin: Fraction of the remaining space usable for content.

    Returns:
        TokenBudget with content_budget >= 0.
    """
    available = max_context_tokens - prompt_overhead - output_reserve
    content_budget = max(0, math.floor(available * safety_margin))
    if content_budget == 0:
        logger.warning(
            "No content budget left: window=%d overhead=%d reserve=%d",
            max_context_tokens, prompt_overhead, output_reserve,
        )
    return TokenBudget(
        total=max_context_tokens,
        prompt_overhead=prompt_overhead,
        output_reserve=output_reserve,
        content_budget=content_budget,
    )


def budget_from_settings(settings: Settings) -> TokenBudget:
    """Per-round budget for the configured model."""
    return compute_token_budget(
        settings.llm_context_window,
        prompt_overhead=settings.context_prompt_overhead,
        output_reserve=settings.context_output_reserve,
        safety_margin=settings.context_safety_margin,
    )
