# src/config/rounds.py — v1
"""Declarative round registry.

The round DAG is fixed per application version: each entry lists the
rounds whose results it consumes. Validated once at startup by
pipeline/dag_builder.py.
"""

from __future__ import annotations

from codebrief.core.models import RoundDefinition

ROUND_DEFINITIONS: list[RoundDefinition] = [
    RoundDefinition(id=1, name="Project Overview"),
    RoundDefinition(id=2, name="Module Detection", depends_on=frozenset({1})),
    RoundDefinition(id=3, name="Feature Extraction", depends_on=frozenset({1, 2})),
    RoundDefinition(
        id=4, name="Architecture Detection", depends_on=frozenset({1, 2, 3})
    ),
    RoundDefinition(id=5, name="Edge Cases & Conventions", depends_on=frozenset({1, 2})),
    RoundDefinition(id=6, name="Deployment Inference", depends_on=frozenset({1, 2})),
]

# Document each round feeds, used in degraded-output reporting.
ROUND_DOCUMENT_MAP: dict[int, str] = {
    1: "Project Overview document",
    2: "Module Detection document",
    3: "Feature Extraction document",
    4: "Architecture Detection document",
    5: "Edge Cases & Conventions document",
    6: "Deployment Inference document",
}


def round_names(definitions: list[RoundDefinition] | None = None) -> dict[int, str]:
    """Return round id -> display name."""
    defs = ROUND_DEFINITIONS if definitions is None else definitions
    return {d.id: d.label for d in defs}


def compute_required_rounds(
    only: set[int] | None,
    definitions: list[RoundDefinition] | None = None,
) -> set[int]:
    """Expand a round selection to include all transitive dependencies.

    Args:
        only: Selected round ids, or None for every declared round.
        definitions: Round declarations (defaults to ROUND_DEFINITIONS).

    Returns:
        Set of round ids that must run for the selection to be computable.

    Raises:
        ValueError: If a selected round id is not declared.
    """
    defs = ROUND_DEFINITIONS if definitions is None else definitions
    by_id = {d.id: d for d in defs}
    if only is None:
        return set(by_id)

    unknown = sorted(r for r in only if r not in by_id)
    if unknown:
        raise ValueError(
            f"Unknown round ids: {unknown}. Valid: {sorted(by_id)}"
        )

    required: set[int] = set()
    stack = list(only)
    while stack:
        round_id = stack.pop()
        if round_id in required:
            continue
        required.add(round_id)
        definition = by_id.get(round_id)
        if definition is not None:
            stack.extend(definition.depends_on)
    return required


def select_definitions(
    only: set[int] | None,
    definitions: list[RoundDefinition] | None = None,
) -> list[RoundDefinition]:
    """Return declarations for the selection plus dependencies, in id order."""
    defs = ROUND_DEFINITIONS if definitions is None else definitions
    required = compute_required_rounds(only, defs)
    return sorted((d for d in defs if d.id in required), key=lambda d: d.id)
