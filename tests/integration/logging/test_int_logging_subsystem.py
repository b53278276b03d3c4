# tests/integration/logging/test_int_logging_subsystem.py — v1
"""Integration tests: structured run logs carry round and wave context."""

from __future__ import annotations

import json
import logging

import pytest

from codebrief.llm.base_executor import ProviderError
from codebrief.logging.context import clear_context
from codebrief.logging.logger import setup_logging


@pytest.fixture
def json_log(tmp_path):
    log_file = tmp_path / "logs" / "run.jsonl"
    setup_logging(level="DEBUG", log_format="json", log_file=str(log_file))
    yield log_file
    root = logging.getLogger("codebrief")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    clear_context()


def _entries(log_file) -> list[dict]:
    for handler in logging.getLogger("codebrief").handlers:
        handler.flush()
    return [json.loads(line) for line in log_file.read_text().splitlines() if line]


class TestRunLogs:
    @pytest.mark.asyncio
    async def test_round_failure_logged_with_context(
        self, json_log, executor_cls, memory_cache, make_orchestrator, sample_files
    ):
        executor = executor_cls(failures={3: ProviderError("bad schema")})
        await make_orchestrator(executor, memory_cache).run(sample_files)

        entries = _entries(json_log)
        failure = next(e for e in entries if e["message"].startswith("Round 3 failed"))
        assert failure["level"] == "ERROR"
        assert failure["context"]["round_id"] == 3
        assert failure["context"]["wave"] == 2
        assert "run_id" in failure["context"]

        blocked = next(e for e in entries if e["message"].startswith("Round 4 blocked"))
        assert blocked["level"] == "WARNING"

    @pytest.mark.asyncio
    async def test_every_entry_shares_run_id(
        self, json_log, fake_executor, memory_cache, make_orchestrator, sample_files
    ):
        await make_orchestrator(fake_executor, memory_cache).run(sample_files)
        run_ids = {
            e["context"]["run_id"] for e in _entries(json_log) if "run_id" in e.get("context", {})
        }
        assert len(run_ids) == 1
