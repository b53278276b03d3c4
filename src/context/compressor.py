# src/context/compressor.py — v1
"""Deterministic inter-round context compressor.

Extracts modules, findings, relationships and open questions from a prior
round's payload without any LLM call, then trims fields until the compact
text fits a token limit. Trim order: open questions, findings (at least
one is kept), relationships, modules.
"""

from __future__ import annotations

from typing import Any

from codebrief.context.token_counter import estimate_tokens
from codebrief.core.models import RoundContext


def compress_round_output(
    round_id: int,
    output: dict[str, Any],
    max_tokens: int = 2000,
    estimate=estimate_tokens,
) -> RoundContext:
    """Build a RoundContext from a round payload, capped at max_tokens."""
    fields = {
        "modules": _extract_modules(output),
        "findings": _extract_strings(output, "findings", "key_findings", "keyFindings"),
        "relationships": _extract_relationships(output),
        "open_questions": _extract_strings(output, "open_questions", "openQuestions"),
    }
    min_findings = 1 if fields["findings"] else 0

    def fits() -> bool:
        return estimate(build_compact_text(round_id, **fields)) <= max_tokens

    for name, floor in (
        ("open_questions", 0),
        ("findings", min_findings),
        ("relationships", 0),
        ("modules", 0),
    ):
        while len(fields[name]) > floor and not fits():
            fields[name].pop()

    text = build_compact_text(round_id, **fields)
    return RoundContext(round_id=round_id, token_count=estimate(text), **fields)


def build_compact_text(
    round_id: int,
    modules: list[str],
    findings: list[str],
    relationships: list[str],
    open_questions: list[str],
) -> str:
    """Render a RoundContext's fields as prompt text."""
    lines = [f"## Round {round_id} Context"]
    if modules:
        lines.append(f"Modules: {', '.join(modules)}")
    if findings:
        lines.append("Findings:")
        lines.extend(f"- {f}" for f in findings)
    if relationships:
        lines.append(f"Relationships: {'; '.join(relationships)}")
    if open_questions:
        lines.append(f"Open questions: {'; '.join(open_questions)}")
    return "\n".join(lines)


def render_context(context: RoundContext) -> str:
    return build_compact_text(
        context.round_id,
        context.modules,
        context.findings,
        context.relationships,
        context.open_questions,
    )


def _extract_modules(output: dict[str, Any]) -> list[str]:
    raw = output.get("modules")
    if not isinstance(raw, list):
        return []
    modules = []
    for item in raw:
        if isinstance(item, str):
            modules.append(item)
        elif isinstance(item, dict) and "name" in item:
            modules.append(str(item["name"]))
    return modules


def _extract_strings(output: dict[str, Any], *keys: str) -> list[str]:
    for key in keys:
        raw = output.get(key)
        if isinstance(raw, list):
            return [s for s in raw if isinstance(s, str)]
    return []


def _extract_relationships(output: dict[str, Any]) -> list[str]:
    raw = output.get("relationships")
    if not isinstance(raw, list):
        return []
    relationships = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        source = item.get("source", item.get("from"))
        target = item.get("target", item.get("to"))
        if source is None or target is None:
            continue
        kind = item.get("type")
        arrow = f"{source} -> {target}"
        relationships.append(f"{arrow} ({kind})" if kind else arrow)
    return relationships
