# src/api/facade.py — v1
"""Public API facade — single entry point for the LLM analysis rounds.

Usage:
    from codebrief.api.facade import run_analysis
    report = await run_analysis(executor, files, candidates)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from codebrief.cache.cache_factory import create_round_cache
from codebrief.cache.fingerprint import compute_fingerprint
from codebrief.config.settings import Settings
from codebrief.core.models import ContentCandidate, FileRecord, RunReport
from codebrief.pipeline.orchestrator import RoundEvents, RoundOrchestrator

if TYPE_CHECKING:
    from codebrief.cache.round_cache import RoundCache
    from codebrief.llm.base_executor import BaseRoundExecutor
    from codebrief.tracking.usage_tracker import TokenUsageTracker

logger = logging.getLogger(__name__)


async def run_analysis(
    executor: BaseRoundExecutor,
    files: Iterable[FileRecord],
    candidates: Iterable[ContentCandidate] = (),
    settings: Settings | None = None,
    cache: RoundCache | None = None,
    tracker: TokenUsageTracker | None = None,
    events: RoundEvents | None = None,
    cancel_event: asyncio.Event | None = None,
) -> RunReport:
    """Run the analysis rounds for a scanned codebase.

    Steps:
      1. Resolve settings (loaded from .env if None)
      2. In static-only mode, return an empty report without touching
         the cache or the provider
      3. Otherwise run the orchestrator over the configured round subset

    Args:
        executor: Provider-execution capability.
        files: File records from the scanner.
        candidates: Prompt content candidates from static analysis.
        settings: Global settings.
        cache: Round cache. Built from settings if None.
        tracker: Token usage tracker. One is created if None.
        events: Progress callbacks.
        cancel_event: Set to stop submitting rounds.

    Returns:
        RunReport with one outcome per executed or skipped round.

    Raises:
        RoundGraphError: If the round declarations are invalid.
        CacheWriteError: If a round result cannot be persisted.
    """
    settings = settings or Settings()
    files = list(files)

    if settings.static_only:
        logger.info("Static-only mode: skipping LLM rounds")
        return RunReport(
            fingerprint=compute_fingerprint(files), model=settings.llm_model
        )

    owns_cache = cache is None
    cache = cache or create_round_cache(settings)
    orchestrator = RoundOrchestrator.from_settings(
        settings, executor, cache, tracker=tracker, events=events
    )
    logger.info(
        "Starting analysis: provider=%s, model=%s, %d files, concurrency=%d",
        executor.provider_name, settings.llm_model, len(files),
        settings.effective_concurrency,
    )
    try:
        return await orchestrator.run(
            files,
            candidates,
            only=settings.only_rounds_set,
            cancel_event=cancel_event,
            force=settings.force,
        )
    finally:
        if owns_cache:
            cache.close()
