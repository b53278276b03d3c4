# src/llm/base_executor.py — v1
"""Abstract provider-execution capability consumed by the orchestrator.

Implementations wrap a concrete LLM SDK: send the prompt, parse the
structured answer and report usage. Transient failures (rate limits,
timeouts, 5xx) are retried inside the provider layer, never by the
orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from codebrief.core.models import RoundResult
from codebrief.llm.models import RoundPrompt


class ProviderError(Exception):
    """Round execution failed in the provider layer.

    Args:
        message: Human-readable reason.
        transient: True if a retry may succeed.
        status_code: HTTP status when known.
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: int | None = None,
    ) -> None:
        self.transient = transient
        self.status_code = status_code
        super().__init__(message)


class BaseRoundExecutor(ABC):
    """Unified interface for running one round against an LLM provider."""

    @abstractmethod
    async def execute(
        self,
        round_id: int,
        prompt: RoundPrompt,
        expected_schema: type[BaseModel] | None,
    ) -> RoundResult:
        """Run one round and return its structured result.

        Raises:
            ProviderError: On failure; ``transient`` tells retryable apart.
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, ollama, ...)."""
