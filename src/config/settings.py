# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for model selection, round concurrency, context
budgeting, cache location and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


# Providers that run inference on the local machine get a small in-flight limit.
LOCAL_PROVIDERS: frozenset[str] = frozenset({"ollama", "llamacpp", "lmstudio"})


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDER ===
    llm_provider: str = "anthropic"
    llm_model: str = "claude-sonnet-4-20250514"
    llm_context_window: int = 200_000

    # === Context budgeting ===
    context_prompt_overhead: int = 3000
    context_output_reserve: int = 4096
    context_safety_margin: float = 0.9
    context_compressed_round_tokens: int = 2000
    token_warn_threshold: float = 0.85

    # === Round scheduling ===
    round_concurrency: int | None = None
    concurrency_local: int = 1
    concurrency_cloud: int = 4
    only_rounds: str = ""
    static_only: bool = False
    force: bool = False
    round_quality_retry: bool = True

    # === Cache ===
    project_root: Path = Path(".")
    cache_backend: Literal["json", "sqlite", "memory"] = "json"
    cache_dir: Path = Path(".codebrief/cache/rounds")
    cache_schema_version: int = 2

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("context_safety_margin")
    @classmethod
    def validate_safety_margin(cls, v: float) -> float:  # noqa: N805
        if not 0.0 < v <= 1.0:
            raise ValueError("context_safety_margin must be in (0, 1]")
        return v

    @field_validator("round_concurrency", "concurrency_local", "concurrency_cloud")
    @classmethod
    def validate_concurrency(cls, v: int | None) -> int | None:  # noqa: N805
        if v is not None and v < 1:
            raise ValueError("concurrency limits must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        reserved = self.context_prompt_overhead + self.context_output_reserve
        if reserved >= self.llm_context_window:
            errors.append(
                "LLM_CONTEXT_WINDOW must exceed CONTEXT_PROMPT_OVERHEAD + "
                "CONTEXT_OUTPUT_RESERVE"
            )

        if self.cache_schema_version < 1:
            errors.append("CACHE_SCHEMA_VERSION must be >= 1")

        try:
            self.only_rounds_set
        except ValueError:
            errors.append(f"ONLY_ROUNDS must be a comma list of ints: {self.only_rounds!r}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def effective_concurrency(self) -> int:
        """In-flight round limit: explicit override, else per provider class."""
        if self.round_concurrency is not None:
            return self.round_concurrency
        if self.llm_provider.lower() in LOCAL_PROVIDERS:
            return self.concurrency_local
        return self.concurrency_cloud

    @property
    def only_rounds_set(self) -> set[int] | None:
        """Parse comma-separated round ids. None means all rounds."""
        parts = [p.strip() for p in self.only_rounds.split(",") if p.strip()]
        if not parts:
            return None
        return {int(p) for p in parts}

    @property
    def cache_path(self) -> Path:
        """Cache directory resolved against the project root."""
        if self.cache_dir.is_absolute():
            return self.cache_dir
        return self.project_root / self.cache_dir


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
