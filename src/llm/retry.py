# src/llm/retry.py — v1
"""Provider-layer retry policy with exponential backoff.

Transient provider errors are retried per error type; fatal ones and
exhausted retries surface as terminal failures for the orchestrator.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from codebrief.core.models import RoundResult
from codebrief.llm.base_executor import BaseRoundExecutor, ProviderError
from codebrief.llm.models import RoundPrompt

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RetryExhausted(ProviderError):
    """A round kept failing past its retry allowance, or failed in an unretryable way."""

    def __init__(self, round_id: int, error_type: str, attempts: int, last_error: Exception):
        self.round_id = round_id
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Round {round_id} gave up after {attempts} attempt(s) [{error_type}]: {last_error}",
            transient=False,
        )


@dataclass(frozen=True)
class RetryConfig:
    """Backoff for one error type: ``base_delay_s * backoff_factor ** n``."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay(self, retry_index: int) -> float:
        """Seconds to wait before retry number ``retry_index`` (0-based).

        Jitter scales the delay by a factor in [0.5, 1.5).
        """
        seconds = self.base_delay_s * self.backoff_factor**retry_index
        if self.jitter:
            seconds *= random.uniform(0.5, 1.5)  # noqa: S311
        return seconds


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=3, base_delay_s=2.0),
    "server_error": RetryConfig(max_retries=3, base_delay_s=5.0),
    "timeout": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "parse_error": RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
    "transient": RetryConfig(max_retries=2, base_delay_s=1.0),
}

# Message-based rules, checked in order after status codes.
_MESSAGE_RULES: list[tuple[str, Callable[[str, str], bool]]] = [
    ("rate_limit", lambda msg, name: "429" in msg or "rate limit" in msg),
    ("timeout", lambda msg, name: "timeout" in name or "timeout" in msg),
    ("server_error", lambda msg, name: any(c in msg for c in ("500", "502", "503", "504", "server error"))),
    ("parse_error", lambda msg, name: any(w in msg for w in ("json", "parse", "decode"))),
]


def classify_error(error: Exception) -> str:
    """Map an exception to a key of the retry config table.

    Non-transient ProviderErrors are "fatal"; errors nothing recognizes
    are "unknown" and are not retried.
    """
    if isinstance(error, ProviderError):
        if not error.transient:
            return "fatal"
        if error.status_code == 429:
            return "rate_limit"
        if error.status_code is not None and error.status_code >= 500:
            return "server_error"

    msg, name = str(error).lower(), type(error).__name__.lower()
    for error_type, matches in _MESSAGE_RULES:
        if matches(msg, name):
            return error_type
    return "transient" if isinstance(error, ProviderError) else "unknown"


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    round_id: int = 0,
    retry_configs: dict[str, RetryConfig] | None = None,
    sleep: Sleep = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Await ``fn(*args, **kwargs)``, retrying classified transient failures.

    Raises:
        ProviderError: Non-transient provider errors, unchanged.
        RetryExhausted: If all retries are exhausted or the error is unknown.
    """
    configs = retry_configs or DEFAULT_RETRY_CONFIGS

    for attempt in itertools.count(1):
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            if error_type == "fatal":
                raise
            config = configs.get(error_type)
            if config is None or attempt > config.max_retries:
                raise RetryExhausted(round_id, error_type, attempt, e) from e

            wait = config.delay(attempt - 1)
            logger.warning(
                "Round %d: %s on attempt %d of %d, next try in %.1fs",
                round_id, error_type, attempt, config.max_retries + 1, wait,
            )
            await sleep(wait)


class RetryingExecutor(BaseRoundExecutor):
    """Wrap an executor so transient failures are retried with backoff."""

    def __init__(
        self,
        inner: BaseRoundExecutor,
        retry_configs: dict[str, RetryConfig] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._inner = inner
        self._retry_configs = retry_configs
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._inner.provider_name

    async def execute(
        self,
        round_id: int,
        prompt: RoundPrompt,
        expected_schema: type[BaseModel] | None,
    ) -> RoundResult:
        return await with_retry(
            self._inner.execute,
            round_id,
            prompt,
            expected_schema,
            round_id=round_id,
            retry_configs=self._retry_configs,
            sleep=self._sleep,
        )
