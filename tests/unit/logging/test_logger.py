# tests/unit/logging/test_logger.py — v1
"""Tests for logging/logger.py — formatters and handler setup."""

from __future__ import annotations

import json
import logging
import sys

from codebrief.logging.context import clear_context, set_round_context, set_run_context
from codebrief.logging.logger import JsonFormatter, TextFormatter, setup_logging


def _record(msg: str = "Hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_run_context("run1")
        set_round_context(3, wave=2)
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"] == {"run_id": "run1", "round_id": 3, "wave": 2}

    def test_extra_data(self):
        record = _record()
        record.data = {"tokens": 12}
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["data"] == {"tokens": 12}


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output
        assert "[round" not in output

    def test_round_and_wave(self):
        set_round_context(4, wave=1)
        output = TextFormatter().format(_record())
        assert "[round 4]" in output
        assert "(wave 1)" in output

    def test_exception_appended(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        output = TextFormatter().format(record)
        assert output.splitlines()[0].endswith(": failed")
        assert "RuntimeError: boom" in output


class TestSetupLogging:
    def teardown_method(self):
        logging.getLogger("codebrief").handlers.clear()

    def test_no_duplicate_handlers(self):
        setup_logging(level="DEBUG")
        setup_logging(level="DEBUG")
        root = logging.getLogger("codebrief")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_json_format(self):
        setup_logging(log_format="json")
        handler = logging.getLogger("codebrief").handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_unknown_format_falls_back_to_text(self):
        root = setup_logging(log_format="xml")
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging(log_file=str(log_file))
        root = logging.getLogger("codebrief")
        assert len(root.handlers) == 2
        root.info("written")
        for handler in root.handlers:
            handler.flush()
        assert "written" in log_file.read_text()
        root.handlers[1].close()
