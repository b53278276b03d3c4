# src/logging/context.py — v1
"""Run, round and wave identifiers carried alongside log records.

Values live in context variables: the orchestrator sets the run id once,
and each round task sets its own round and wave, which asyncio copies
per task so concurrent rounds never see each other's values.
"""

from __future__ import annotations

import contextvars
from dataclasses import asdict, dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("codebrief_run_id", default=None)
_round_id: contextvars.ContextVar[int | None] = contextvars.ContextVar("codebrief_round_id", default=None)
_wave: contextvars.ContextVar[int | None] = contextvars.ContextVar("codebrief_wave", default=None)


@dataclass(frozen=True)
class LogContext:
    run_id: str | None = None
    round_id: int | None = None
    wave: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Fields that are set, for the JSON ``context`` object."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(run_id=_run_id.get(), round_id=_round_id.get(), wave=_wave.get())


def set_run_context(run_id: str) -> None:
    _run_id.set(run_id)


def set_round_context(round_id: int, wave: int | None = None) -> None:
    """Tag subsequent records from the current task with a round and wave."""
    _round_id.set(round_id)
    _wave.set(wave)


def clear_context() -> None:
    for var in (_run_id, _round_id, _wave):
        var.set(None)
