# src/context/scorer.py — v1
"""Deterministic importance scoring for prompt content candidates.

Score factors and caps:
  - entry point:   +30
  - importers:     +3 each, cap 30
  - exports:       +2 each, cap 20
  - git activity:  +1 per change, cap 10
  - TODO/FIXME:    +10
  - config file:   +15
  - explicit boost
Test files take a -15 penalty. Scores are clamped to [0, 100].
Lock files carry no analysis value and are never scored.
"""

from __future__ import annotations

import re

from codebrief.core.models import ContentCandidate

LOCK_FILES: frozenset[str] = frozenset({
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Cargo.lock",
    "go.sum",
    "poetry.lock",
    "uv.lock",
    "Pipfile.lock",
})

_ENTRY_POINT_PATTERNS = [
    re.compile(r"^(index|main|app|server|cli|__main__)\.[^/]+$"),
    re.compile(r"/(index|main|app|server|__main__)\.[^/]+$"),
]

_CONFIG_FILE_PATTERNS = [
    re.compile(r"\.config\.[^/]+$"),
    re.compile(r"(^|/)\.?(babel|eslint|prettier|jest|vitest|webpack|tsconfig|rollup|vite)[^/]*$"),
    re.compile(r"(^|/)\.env[^/]*$"),
    re.compile(
        r"^(package\.json|Cargo\.toml|go\.mod|pyproject\.toml|setup\.cfg|"
        r"Makefile|Dockerfile|docker-compose\.ya?ml)$"
    ),
]

_TEST_PATTERNS = [
    re.compile(r"\.test\."),
    re.compile(r"\.spec\."),
    re.compile(r"(^|/)__tests__/"),
    re.compile(r"(^|/)tests?/"),
    re.compile(r"(^|/)test_[^/]+\.py$"),
    re.compile(r"_test\.[^/]+$"),
]

TEST_PENALTY = 15


def is_lock_file(path: str) -> bool:
    return path.rsplit("/", 1)[-1] in LOCK_FILES


def is_entry_point(path: str) -> bool:
    return any(p.search(path) for p in _ENTRY_POINT_PATTERNS)


def is_config_file(path: str) -> bool:
    return any(p.search(path) for p in _CONFIG_FILE_PATTERNS)


def is_test_file(path: str) -> bool:
    return any(p.search(path) for p in _TEST_PATTERNS)


def score_candidate(candidate: ContentCandidate) -> int:
    """Compute a 0..100 importance score for one candidate."""
    path = candidate.path
    score = 0
    if is_entry_point(path):
        score += 30
    score += min(candidate.importer_count * 3, 30)
    score += min(candidate.export_count * 2, 20)
    score += min(candidate.git_changes, 10)
    if candidate.has_edge_case_markers:
        score += 10
    if is_config_file(path):
        score += 15
    score += candidate.boost
    if is_test_file(path):
        score -= TEST_PENALTY
    return max(0, min(100, score))


def rank_candidates(
    candidates: list[ContentCandidate],
) -> list[tuple[ContentCandidate, int]]:
    """Score candidates and order them for greedy selection.

    Pinned candidates come first, then score descending; ties are broken
    by path so the order is fully deterministic. Lock files are dropped.
    """
    scored = [(c, score_candidate(c)) for c in candidates if not is_lock_file(c.path)]
    scored.sort(key=lambda item: (not item[0].pinned, -item[1], item[0].path))
    return scored
