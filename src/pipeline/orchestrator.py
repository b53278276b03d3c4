# src/pipeline/orchestrator.py — v1
"""Round orchestrator — wave-by-wave execution with cascade caching.

Drives the analysis rounds:
  1. Validate the round DAG and partition it into waves
  2. For each wave, run its rounds concurrently (bounded by a semaphore):
     derive the round's cache key from the fingerprint, the model and the
     in-memory result hashes of its dependencies; reuse a cache hit or
     execute through the provider capability, validate, review the
     payload (file claims, quality; one stricter retry), then persist
  3. Before each wave, mark rounds with a failed or blocked dependency
     as blocked; they are never executed and never cached
  4. Return the full status map; partial failure is a valid outcome

Only round-graph errors and cache write failures abort a run.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from codebrief.cache.fingerprint import compute_fingerprint
from codebrief.cache.round_cache import CacheWriteError, RoundCache
from codebrief.config.rounds import ROUND_DEFINITIONS, select_definitions
from codebrief.config.settings import Settings
from codebrief.context.budgeter import select_content
from codebrief.context.compressor import compress_round_output
from codebrief.context.token_counter import budget_from_settings, estimate_tokens
from codebrief.core.models import (
    ContentCandidate,
    ContentSelection,
    FileRecord,
    RoundDefinition,
    RoundOutcome,
    RoundResult,
    RoundStatus,
    RunReport,
    TokenBudget,
)
from codebrief.llm.base_executor import BaseRoundExecutor, ProviderError
from codebrief.llm.models import RoundPrompt
from codebrief.logging.context import set_round_context, set_run_context
from codebrief.pipeline.dag_builder import build_plan
from codebrief.rounds.prompts import build_round_prompt
from codebrief.rounds.quality import check_round_quality
from codebrief.rounds.schemas import (
    ROUND_SCHEMAS,
    PayloadValidationError,
    validate_round_payload,
)
from codebrief.rounds.validator import MAX_DROP_RATE, validate_file_claims
from codebrief.tracking.usage_tracker import RoundTokenUsage, TokenUsageTracker

logger = logging.getLogger(__name__)

_UPSTREAM_BROKEN = (RoundStatus.FAILED, RoundStatus.BLOCKED)


@dataclass
class RoundEvents:
    """Optional progress callbacks for terminal display."""

    on_round_start: Callable[[int, str], Any] | None = None
    on_round_complete: Callable[[RoundOutcome], Any] | None = None


@dataclass
class _RunState:
    fingerprint: str
    candidates: list[ContentCandidate]
    report: RunReport
    results: dict[int, RoundResult]
    result_hashes: dict[int, str]
    semaphore: asyncio.Semaphore
    cancel_event: asyncio.Event | None
    known_paths: frozenset[str] = frozenset()
    selection: ContentSelection | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class RoundOrchestrator:
    """Run analysis rounds in dependency order with caching.

    Args:
        executor: Provider-execution capability.
        cache: Round result cache.
        model: Model identifier, part of every cache key.
        budget: Per-round token budget.
        definitions: Round declarations (validated here, fatal on error).
        concurrency: Max rounds in flight.
        schemas: Expected payload model per round id.
        tracker: Optional token usage tracker.
        events: Optional progress callbacks.
        compressed_round_tokens: Token cap of each dependency digest.
        quality_retry: Re-run a round once, with a stricter prompt, when
            its payload cites unknown files or fails the quality gate.
    """

    def __init__(
        self,
        executor: BaseRoundExecutor,
        cache: RoundCache,
        model: str,
        budget: TokenBudget,
        definitions: list[RoundDefinition] | None = None,
        concurrency: int = 4,
        schemas: dict[int, type[BaseModel]] | None = None,
        tracker: TokenUsageTracker | None = None,
        events: RoundEvents | None = None,
        compressed_round_tokens: int = 2000,
        quality_retry: bool = True,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._executor = executor
        self._cache = cache
        self._model = model
        self._budget = budget
        self._definitions = list(ROUND_DEFINITIONS if definitions is None else definitions)
        self._concurrency = concurrency
        self._schemas = ROUND_SCHEMAS if schemas is None else schemas
        self._tracker = tracker
        self._events = events or RoundEvents()
        self._compressed_round_tokens = compressed_round_tokens
        self._quality_retry = quality_retry
        self._full_plan = build_plan(self._definitions)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        executor: BaseRoundExecutor,
        cache: RoundCache,
        definitions: list[RoundDefinition] | None = None,
        tracker: TokenUsageTracker | None = None,
        events: RoundEvents | None = None,
    ) -> RoundOrchestrator:
        """Build an orchestrator from application settings."""
        return cls(
            executor=executor,
            cache=cache,
            model=settings.llm_model,
            budget=budget_from_settings(settings),
            definitions=definitions,
            concurrency=settings.effective_concurrency,
            tracker=tracker or TokenUsageTracker(settings.token_warn_threshold),
            events=events,
            compressed_round_tokens=settings.context_compressed_round_tokens,
            quality_retry=settings.round_quality_retry,
        )

    @property
    def waves(self) -> list[list[int]]:
        return self._full_plan.waves

    async def run(
        self,
        files: Iterable[FileRecord],
        candidates: Iterable[ContentCandidate] = (),
        only: set[int] | None = None,
        cancel_event: asyncio.Event | None = None,
        force: bool = False,
    ) -> RunReport:
        """Execute the selected rounds and return their outcomes.

        Args:
            files: File records of the analyzed codebase.
            candidates: Prompt content candidates.
            only: Round subset to run (dependencies are added). None = all.
            cancel_event: Once set, no further round is started.
            force: Clear the cache before running.

        Returns:
            RunReport with one outcome per selected round.

        Raises:
            RoundGraphError: If the selection cannot be planned.
            CacheWriteError: If a computed result cannot be persisted.
        """
        start = time.monotonic()
        set_run_context(uuid.uuid4().hex[:12])

        definitions = select_definitions(only, self._definitions)
        by_id = {d.id: d for d in definitions}
        plan = build_plan(definitions)

        if force:
            logger.info("Force re-run: clearing round cache")
            await self._cache.clear()

        files = list(files)
        fingerprint = compute_fingerprint(files)
        state = _RunState(
            fingerprint=fingerprint,
            candidates=list(candidates),
            report=RunReport(
                fingerprint=fingerprint,
                model=self._model,
                waves=plan.waves,
                outcomes={
                    d.id: RoundOutcome(round_id=d.id, name=d.label) for d in definitions
                },
            ),
            results={},
            result_hashes={},
            semaphore=asyncio.Semaphore(self._concurrency),
            cancel_event=cancel_event,
            known_paths=frozenset(f.path for f in files),
        )

        for wave_idx, wave in enumerate(plan.waves):
            runnable = []
            for round_id in wave:
                outcome = state.report.outcomes[round_id]
                broken = sorted(
                    dep for dep in by_id[round_id].depends_on
                    if state.report.outcomes[dep].status in _UPSTREAM_BROKEN
                )
                if broken:
                    self._mark_blocked(outcome, broken)
                elif state.cancelled or any(
                    state.report.outcomes[dep].status == RoundStatus.CANCELLED
                    for dep in by_id[round_id].depends_on
                ):
                    self._finish(outcome, RoundStatus.CANCELLED, error="Run cancelled")
                else:
                    runnable.append(by_id[round_id])

            if not runnable:
                continue

            logger.info("Wave %d: running rounds %s", wave_idx, [d.id for d in runnable])
            tasks = [
                asyncio.create_task(self._run_round(d, wave_idx, state)) for d in runnable
            ]
            gathered = await asyncio.gather(*tasks, return_exceptions=True)
            write_errors = []
            for definition, error in zip(runnable, gathered):
                outcome = state.report.outcomes[definition.id]
                if isinstance(error, CacheWriteError):
                    write_errors.append(error)
                elif isinstance(error, asyncio.CancelledError):
                    self._finish(outcome, RoundStatus.CANCELLED, error="Run cancelled")
                elif isinstance(error, Exception):
                    self._fail_crashed(outcome, error)
                elif isinstance(error, BaseException):
                    raise error
            if write_errors:
                logger.error("Aborting run: %s", write_errors[0])
                raise write_errors[0]

        report = state.report
        report.elapsed_ms = _elapsed_ms(start)
        report.cache_migrated = self._cache.was_migrated
        logger.info(
            "Rounds complete in %dms: %d cached, %d succeeded, %d failed, "
            "%d blocked, %d cancelled, %d provider calls",
            report.elapsed_ms, len(report.cached), len(report.succeeded),
            len(report.failed), len(report.blocked), len(report.cancelled),
            report.provider_calls,
        )
        return report

    # ------------------------------------------------------------------
    # Per-round execution
    # ------------------------------------------------------------------

    async def _run_round(
        self, definition: RoundDefinition, wave_idx: int, state: _RunState
    ) -> None:
        round_id = definition.id
        outcome = state.report.outcomes[round_id]

        async with state.semaphore:
            set_round_context(round_id, wave_idx)
            if state.cancelled:
                self._finish(outcome, RoundStatus.CANCELLED, error="Run cancelled")
                return

            start = time.monotonic()
            outcome.status = RoundStatus.RUNNING
            self._notify_start(definition)

            dependency_hashes = [state.result_hashes[d] for d in definition.depends_on]
            key = RoundCache.round_hash(
                round_id, self._model, state.fingerprint, dependency_hashes
            )
            outcome.cache_key = key

            result = await self._lookup(round_id, key)
            if result is not None:
                status = RoundStatus.CACHED
                logger.info("Round %d: cache hit", round_id)
            else:
                result = await self._execute(definition, state, start)
                if result is None:
                    outcome.elapsed_ms = _elapsed_ms(start)
                    self._notify_complete(outcome)
                    return
                await self._cache.set(
                    round_id, key, result.model_dump(mode="json"), self._model
                )
                status = RoundStatus.SUCCEEDED

            result_hash = RoundCache.result_hash(result)
            state.results[round_id] = result
            state.result_hashes[round_id] = result_hash
            outcome.result = result
            outcome.result_hash = result_hash
            outcome.elapsed_ms = _elapsed_ms(start)
            self._finish(outcome, status)

    async def _lookup(self, round_id: int, key: str) -> RoundResult | None:
        cached = await self._cache.get(round_id, key)
        if cached is None:
            return None
        try:
            return RoundResult.model_validate(cached)
        except ValidationError as e:
            logger.warning(
                "Round %d: cached payload has unexpected shape (%d errors), re-running",
                round_id, e.error_count(),
            )
            return None

    async def _execute(
        self, definition: RoundDefinition, state: _RunState, start: float
    ) -> RoundResult | None:
        """Call the provider, validate and review the payload. None means failed.

        A payload citing too many unknown files, or failing the quality
        gate, is re-requested once with a stricter prompt; the second
        answer is kept whatever its review says.
        """
        round_id = definition.id
        outcome = state.report.outcomes[round_id]
        schema = self._schemas.get(round_id)

        for retry in (False, True):
            try:
                prompt = self._build_prompt(definition, state, schema, retry)
                state.report.provider_calls += 1
                raw = await self._executor.execute(round_id, prompt, schema)
                data = validate_round_payload(round_id, raw.data, schema)
            except (ProviderError, PayloadValidationError) as e:
                logger.error("Round %d failed: %s", round_id, e)
                outcome.status = RoundStatus.FAILED
                outcome.error = str(e)
                return None
            except Exception as e:
                logger.error(
                    "Round %d failed with unexpected %s: %s",
                    round_id, type(e).__name__, e, exc_info=True,
                )
                outcome.status = RoundStatus.FAILED
                outcome.error = f"{type(e).__name__}: {e}"
                return None

            outcome.retried = retry
            reason = self._review(outcome, data, state)
            if reason is None or retry or not self._quality_retry:
                break
            logger.warning("Round %d: %s, retrying once", round_id, reason)

        result = raw.model_copy(
            update={
                "data": data,
                "duration_ms": raw.duration_ms or _elapsed_ms(start),
            }
        )
        if self._tracker is not None:
            self._tracker.record_round(
                RoundTokenUsage(
                    round_id=round_id,
                    input_tokens=result.usage.input_tokens,
                    output_tokens=result.usage.output_tokens,
                    content_tokens=prompt.content_tokens,
                    budget_tokens=self._budget.total,
                )
            )
        logger.info(
            "Round %d succeeded: %d tokens in %dms",
            round_id, result.usage.total_tokens, result.duration_ms,
        )
        return result

    def _build_prompt(
        self,
        definition: RoundDefinition,
        state: _RunState,
        schema: type[BaseModel] | None,
        retry: bool = False,
    ) -> RoundPrompt:
        if state.selection is None:
            state.selection = select_content(
                state.candidates, self._budget.content_budget, estimate_tokens
            )
        prior = [
            compress_round_output(
                dep, state.results[dep].data, self._compressed_round_tokens
            )
            for dep in sorted(definition.depends_on)
        ]
        return build_round_prompt(
            definition, state.selection, prior, self._budget, schema, retry=retry
        )

    def _review(self, outcome: RoundOutcome, data: dict[str, Any], state: _RunState) -> str | None:
        """Record claim and quality checks on the outcome; return a retry reason."""
        claims = validate_file_claims(data, state.known_paths)
        quality = check_round_quality(data, outcome.round_id)
        outcome.claims = claims
        outcome.quality = quality
        if claims.drop_rate > MAX_DROP_RATE:
            return (
                f"{len(claims.dropped)} of {claims.total} file references unknown "
                f"({claims.drop_rate:.0%})"
            )
        if not quality.is_acceptable:
            return (
                f"low quality ({quality.text_length} chars, "
                f"{quality.code_references} code references)"
            )
        return None

    # ------------------------------------------------------------------
    # Status bookkeeping
    # ------------------------------------------------------------------

    def _mark_blocked(self, outcome: RoundOutcome, broken: list[int]) -> None:
        outcome.blocked_by = broken
        logger.warning(
            "Round %d blocked: upstream rounds %s did not complete",
            outcome.round_id, broken,
        )
        self._finish(outcome, RoundStatus.BLOCKED, error=f"Blocked by rounds {broken}")

    def _finish(
        self, outcome: RoundOutcome, status: RoundStatus, error: str | None = None
    ) -> None:
        outcome.status = status
        if error is not None:
            outcome.error = error
        self._notify_complete(outcome)

    def _fail_crashed(self, outcome: RoundOutcome, error: Exception) -> None:
        """A round task raised past its own handling; the run continues."""
        logger.error(
            "Round %d crashed: %s: %s", outcome.round_id, type(error).__name__, error,
            exc_info=error,
        )
        if outcome.status.has_result:
            return
        self._finish(outcome, RoundStatus.FAILED, error=f"{type(error).__name__}: {error}")

    def _notify_start(self, definition: RoundDefinition) -> None:
        if self._events.on_round_start is None:
            return
        try:
            self._events.on_round_start(definition.id, definition.label)
        except Exception:
            logger.warning("Round start callback failed for round %d", definition.id, exc_info=True)

    def _notify_complete(self, outcome: RoundOutcome) -> None:
        if self._events.on_round_complete is None:
            return
        try:
            self._events.on_round_complete(outcome)
        except Exception:
            logger.warning(
                "Round complete callback failed for round %d", outcome.round_id, exc_info=True
            )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
