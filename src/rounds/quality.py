# src/rounds/quality.py — v1
"""Heuristic quality gate for round payloads.

A payload passes when its JSON text is long enough, cites enough code
(paths, source extensions, function or class names) and names at least
one file path. Thresholds are per round; unknown rounds get the strict
defaults.
"""

from __future__ import annotations

import json
import re
from typing import Any, NamedTuple

from codebrief.core.models import QualityMetrics


class QualityThresholds(NamedTuple):
    min_text_length: int
    min_code_references: int


DEFAULT_THRESHOLDS = QualityThresholds(min_text_length=500, min_code_references=5)

ROUND_THRESHOLDS: dict[int, QualityThresholds] = {
    1: QualityThresholds(500, 3),
    2: QualityThresholds(500, 5),
    3: QualityThresholds(500, 5),
    4: QualityThresholds(500, 5),
    5: QualityThresholds(500, 5),
    6: QualityThresholds(200, 2),
}

_CODE_REF_RE = re.compile(r"src/|\.ts\b|\.js\b|\.py\b|\.rs\b|\.go\b|function\s+\w+|class\s+\w+")
_FILE_PATH_RE = re.compile(r"src/|[a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+\.\w+")


def check_round_quality(data: dict[str, Any], round_id: int) -> QualityMetrics:
    """Measure a payload against its round's thresholds."""
    text = json.dumps(data, ensure_ascii=False)
    text_length = len(text)
    code_references = len(_CODE_REF_RE.findall(text))
    has_file_paths = _FILE_PATH_RE.search(text) is not None
    thresholds = ROUND_THRESHOLDS.get(round_id, DEFAULT_THRESHOLDS)

    return QualityMetrics(
        text_length=text_length,
        code_references=code_references,
        specificity=code_references / max(text_length / 100, 1),
        has_file_paths=has_file_paths,
        is_acceptable=(
            text_length >= thresholds.min_text_length
            and code_references >= thresholds.min_code_references
            and has_file_paths
        ),
    )
