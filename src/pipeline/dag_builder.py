# src/pipeline/dag_builder.py — v1
"""DAG builder — partition round declarations into execution waves.

Produces a topologically layered execution plan. Detects cycles
and validates that all dependencies are declared.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

import networkx as nx

from codebrief.core.models import RoundDefinition

logger = logging.getLogger(__name__)


class RoundGraphError(Exception):
    """Raised when round declarations do not form a valid DAG."""

    def __init__(self, message: str, round_ids: list[int] | None = None) -> None:
        self.round_ids = round_ids or []
        super().__init__(message)


@dataclass
class ExecutionPlan:
    """Ordered execution plan for rounds.

    waves is a list of levels: rounds within the same wave have no
    mutual dependencies and can run concurrently. Waves execute sequentially.
    """

    waves: list[list[int]] = field(default_factory=list)
    total_rounds: int = 0


def build_plan(definitions: list[RoundDefinition]) -> ExecutionPlan:
    """Build an execution plan from round declarations.

    Uses Kahn's algorithm with level detection. Wave 0 holds rounds
    without dependencies; wave k holds rounds whose dependencies all
    resolved in earlier waves.

    Args:
        definitions: Round declarations.

    Returns:
        ExecutionPlan with waves sorted by round id.

    Raises:
        RoundGraphError: On duplicate ids, undeclared dependencies or cycles.
    """
    if not definitions:
        return ExecutionPlan()

    counts = Counter(d.id for d in definitions)
    duplicates = sorted(r for r, n in counts.items() if n > 1)
    if duplicates:
        raise RoundGraphError(f"Duplicate round ids: {duplicates}", duplicates)

    all_rounds = {d.id for d in definitions}
    for d in definitions:
        missing = sorted(dep for dep in d.depends_on if dep not in all_rounds)
        if missing:
            raise RoundGraphError(
                f"Round {d.id} depends on undeclared rounds {missing}", [d.id, *missing]
            )

    in_degree: dict[int, int] = {d.id: len(d.depends_on) for d in definitions}
    dependents: dict[int, list[int]] = {r: [] for r in all_rounds}
    for d in definitions:
        for dep in d.depends_on:
            dependents[dep].append(d.id)

    waves: list[list[int]] = []
    queue = sorted(r for r, deg in in_degree.items() if deg == 0)
    processed = 0

    while queue:
        waves.append(queue)
        next_queue: list[int] = []
        for round_id in queue:
            processed += 1
            for dependent in dependents[round_id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_queue.append(dependent)
        queue = sorted(next_queue)

    if processed != len(all_rounds):
        cycle_members = _cycle_members(definitions)
        raise RoundGraphError(
            f"Cycle detected involving rounds: {cycle_members}", cycle_members
        )

    plan = ExecutionPlan(waves=waves, total_rounds=processed)
    logger.info(
        "Round DAG built: %d rounds in %d waves → %s",
        plan.total_rounds, len(plan.waves), plan.waves,
    )
    return plan


def downstream_of(definitions: list[RoundDefinition], round_id: int) -> set[int]:
    """All rounds that transitively depend on round_id."""
    graph = _to_graph(definitions)
    if round_id not in graph:
        return set()
    return set(nx.descendants(graph, round_id))


def _to_graph(definitions: list[RoundDefinition]) -> nx.DiGraph:
    """Edges point from a dependency to its dependent."""
    graph = nx.DiGraph()
    for d in definitions:
        graph.add_node(d.id)
        for dep in d.depends_on:
            graph.add_edge(dep, d.id)
    return graph


def _cycle_members(definitions: list[RoundDefinition]) -> list[int]:
    """Round ids lying on at least one dependency cycle."""
    graph = _to_graph(definitions)
    members: set[int] = set()
    for component in nx.strongly_connected_components(graph):
        if len(component) > 1:
            members.update(component)
    members.update(n for n in graph.nodes if graph.has_edge(n, n))
    return sorted(members)
