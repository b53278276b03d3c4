# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — per-task context variables."""

from __future__ import annotations

import asyncio

import pytest

from codebrief.logging.context import (
    clear_context,
    get_context,
    set_round_context,
    set_run_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_empty_by_default(self):
        assert get_context().as_dict() == {}

    def test_run_and_round(self):
        set_run_context("abc")
        set_round_context(2, wave=1)
        ctx = get_context()
        assert (ctx.run_id, ctx.round_id, ctx.wave) == ("abc", 2, 1)

    def test_clear(self):
        set_run_context("abc")
        clear_context()
        assert get_context().run_id is None

    @pytest.mark.asyncio
    async def test_tasks_hold_their_own_round(self):
        set_run_context("shared")

        async def worker(round_id: int) -> tuple[str | None, int | None]:
            set_round_context(round_id)
            await asyncio.sleep(0)
            ctx = get_context()
            return ctx.run_id, ctx.round_id

        results = await asyncio.gather(worker(3), worker(5))
        assert results == [("shared", 3), ("shared", 5)]
        assert get_context().round_id is None
