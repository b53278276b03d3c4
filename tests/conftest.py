# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scripted round executor, sample file records, content
candidates, valid round payloads and cache/orchestrator builders.
No external dependencies — provider calls are faked, disk I/O goes to tmp_path.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest
from pydantic import BaseModel

from codebrief.cache.json_store import JsonCacheStore
from codebrief.cache.memory_store import MemoryCacheStore
from codebrief.cache.round_cache import RoundCache
from codebrief.context.token_counter import compute_token_budget
from codebrief.core.models import ContentCandidate, FileRecord, RoundResult, RoundUsage
from codebrief.llm.base_executor import BaseRoundExecutor
from codebrief.llm.models import RoundPrompt
from codebrief.pipeline.orchestrator import RoundOrchestrator


# === FIXTURES: Sample data ===


SAMPLE_PAYLOADS: dict[int, dict[str, Any]] = {
    1: {
        "projectName": "demo",
        "primaryLanguage": "Python",
        "purpose": "Demo service for tests",
        "findings": ["Async HTTP service", "SQLite persistence"],
        "openQuestions": ["Why two config loaders?"],
    },
    2: {
        "modules": [{"name": "api", "path": "src/api"}, {"name": "core", "path": "src/core"}],
        "relationships": [{"from": "api", "to": "core", "type": "imports"}],
        "findings": ["api depends on core only"],
    },
    3: {"features": [{"name": "login", "modules": ["api"]}]},
    4: {"patterns": [{"name": "layered", "confidence": "high"}]},
    5: {"edge_cases": [{"file": "src/api/app.py", "description": "no timeout"}]},
    6: {"deployment_targets": [{"name": "docker", "evidence": ["Dockerfile"]}]},
}


# Round 1 answer specific enough to pass the review step: long, code-citing,
# and naming only files present in sample_files.
RICH_OVERVIEW: dict[str, Any] = {
    "projectName": "demo",
    "primaryLanguage": "Python",
    "purpose": (
        "Demo service exposing an async HTTP API (src/api/app.py) over "
        "SQLite-backed models (src/core/models.py)."
    ),
    "findings": [
        "src/api/app.py builds the application and registers every route handler at import time.",
        "src/core/models.py defines class Model, the only persistence entity, without migrations.",
        "Request handlers in src/api/app.py call the models directly, with no service layer.",
        "Settings are read once from pyproject.toml and the environment at startup.",
    ],
    "openQuestions": ["Why does src/api/app.py import src/core/models.py inside handlers?"],
}


@pytest.fixture
def rich_overview() -> dict[str, Any]:
    return copy.deepcopy(RICH_OVERVIEW)


@pytest.fixture
def sample_payloads() -> dict[int, dict[str, Any]]:
    """Valid provider payloads for rounds 1-6."""
    return copy.deepcopy(SAMPLE_PAYLOADS)


@pytest.fixture
def sample_files() -> list[FileRecord]:
    """Three file records of a small project."""
    return [
        FileRecord(path="src/api/app.py", content_hash="h-app", size=1200),
        FileRecord(path="src/core/models.py", content_hash="h-models", size=800),
        FileRecord(path="pyproject.toml", content_hash="h-pyproject", size=300),
    ]


@pytest.fixture
def sample_candidates() -> list[ContentCandidate]:
    """Prompt candidates matching sample_files."""
    return [
        ContentCandidate(path="src/api/app.py", content="import core\n" * 20, importer_count=2),
        ContentCandidate(path="src/core/models.py", content="class Model: ...\n" * 10),
        ContentCandidate(path="pyproject.toml", content="[project]\nname = 'demo'\n"),
    ]


# === FIXTURES: Fake provider ===


class FakeExecutor(BaseRoundExecutor):
    """Scripted executor: returns canned payloads, raises configured errors.

    Records every call and the highest number of concurrent executions.
    """

    def __init__(
        self,
        payloads: dict[int, dict[str, Any]] | None = None,
        failures: dict[int, Exception] | None = None,
        delay: float = 0.0,
        model: str = "test-model",
    ) -> None:
        self.payloads = copy.deepcopy(SAMPLE_PAYLOADS if payloads is None else payloads)
        self.failures = dict(failures or {})
        self.delay = delay
        self.model = model
        self.calls: list[int] = []
        self.prompts: dict[int, RoundPrompt] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.hooks: dict[int, Any] = {}

    @property
    def provider_name(self) -> str:
        return "fake"

    async def execute(
        self,
        round_id: int,
        prompt: RoundPrompt,
        expected_schema: type[BaseModel] | None,
    ) -> RoundResult:
        self.calls.append(round_id)
        self.prompts[round_id] = prompt
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if round_id in self.hooks:
                self.hooks[round_id]()
            if self.delay:
                await asyncio.sleep(self.delay)
            if round_id in self.failures:
                raise self.failures[round_id]
            return RoundResult(
                data=copy.deepcopy(self.payloads[round_id]),
                usage=RoundUsage(input_tokens=1000, output_tokens=200),
                model=self.model,
                duration_ms=5,
            )
        finally:
            self.in_flight -= 1


@pytest.fixture
def executor_cls() -> type[FakeExecutor]:
    """The FakeExecutor class, for tests that need custom scripting."""
    return FakeExecutor


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


# === FIXTURES: Cache and orchestrator ===


@pytest.fixture
def memory_cache() -> RoundCache:
    """RoundCache over an in-memory store."""
    return RoundCache(MemoryCacheStore())


@pytest.fixture
def json_cache(tmp_path) -> RoundCache:
    """RoundCache over a JSON store inside a temporary project root."""
    return RoundCache(
        JsonCacheStore(tmp_path / ".codebrief" / "cache" / "rounds"),
        project_root=tmp_path,
    )


@pytest.fixture
def make_orchestrator():
    """Factory: build a RoundOrchestrator with test defaults.

    The quality retry is off so call counts reflect scheduling only;
    tests of the review step enable it explicitly.
    """

    def _make(executor: BaseRoundExecutor, cache: RoundCache, **kwargs: Any) -> RoundOrchestrator:
        kwargs.setdefault("model", "test-model")
        kwargs.setdefault("budget", compute_token_budget(200_000))
        kwargs.setdefault("quality_retry", False)
        return RoundOrchestrator(executor=executor, cache=cache, **kwargs)

    return _make
