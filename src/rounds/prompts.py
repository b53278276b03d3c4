# src/rounds/prompts.py — v1
"""Prompt assembly for analysis rounds.

A prompt is built only from deterministic inputs (round declaration,
budgeted content selection, compressed dependency contexts) so that
unchanged input yields byte-identical prompts.
"""

from __future__ import annotations

import json

from pydantic import BaseModel

from codebrief.context.compressor import render_context
from codebrief.core.models import ContentSelection, RoundContext, RoundDefinition, TokenBudget
from codebrief.llm.models import RoundPrompt

SYSTEM_PROMPT = (
    "You are a senior engineer writing a handover analysis of a codebase. "
    "Only make claims supported by the files shown. Answer with a single JSON "
    "object matching the requested schema."
)

RETRY_PREFIX = (
    "Your previous answer was too generic. Reference specific files, functions "
    "and code patterns from the provided codebase, and cite a file path for "
    "every claim."
)
RETRY_SUFFIX = "Leave out any claim you are unsure of rather than stating it vaguely."

ROUND_INSTRUCTIONS: dict[int, str] = {
    1: "Summarize the project: name, primary language, framework, purpose, "
       "key dependencies, entry points and overall scale.",
    2: "Identify the modules of the codebase, their public API, and the "
       "relationships between them.",
    3: "Extract user-facing and internal features, the modules they span and "
       "their entry points.",
    4: "Detect architecture patterns, layering and data flow, citing evidence.",
    5: "List edge cases, error-handling gaps and coding conventions, "
       "with the file each one occurs in.",
    6: "Infer deployment targets, build steps and required environment variables.",
}


def build_round_prompt(
    definition: RoundDefinition,
    selection: ContentSelection,
    prior_contexts: list[RoundContext],
    budget: TokenBudget,
    schema: type[BaseModel] | None = None,
    retry: bool = False,
) -> RoundPrompt:
    """Assemble the prompt for one round.

    A retry prompt wraps the system prompt with a demand for specific,
    file-cited claims; the user content is unchanged.
    """
    sections = [f"# {definition.label}", ROUND_INSTRUCTIONS.get(definition.id, "")]

    if prior_contexts:
        sections.append("# Prior analysis")
        for context in sorted(prior_contexts, key=lambda c: c.round_id):
            sections.append(render_context(context))

    if schema is not None:
        sections.append("# Output schema")
        sections.append(json.dumps(schema.model_json_schema(), sort_keys=True))

    sections.append("# Files")
    for packed in selection.packed:
        marker = " (truncated)" if packed.tier == "truncated" else ""
        sections.append(f"## {packed.path}{marker}\n{packed.content}")

    if selection.excluded:
        omitted = ", ".join(sorted(p.path for p in selection.excluded))
        sections.append(f"# Omitted for budget\n{omitted}")

    return RoundPrompt(
        round_id=definition.id,
        system=build_retry_system_prompt(SYSTEM_PROMPT) if retry else SYSTEM_PROMPT,
        user="\n\n".join(s for s in sections if s),
        max_output_tokens=budget.output_reserve,
        content_tokens=selection.used_tokens,
        included_paths=[p.path for p in selection.packed],
    )


def build_retry_system_prompt(base: str) -> str:
    return f"{RETRY_PREFIX}\n\n{base}\n\n{RETRY_SUFFIX}"
