"""Structural validation of a FlowGraph.

Checks performed on every graph change:
- dead ends: screens with no outgoing transition
- reachability: descendants of the entry screen, everything else is orphaned
- cycles: presence only, via nx.is_directed_acyclic_graph
- completeness score: 100 minus fixed penalties, clamped to [0, 100]

The score is a heuristic. The penalty weights come from ScoringWeights and
default to 20 per dead end, 15 per orphan and 25 for any cycle.
"""

from __future__ import annotations
from typing import List, Optional, Set

import networkx as nx
from loguru import logger

from .config import ScoringWeights
from .errors import EmptyGraphWarning
from .graph_model import FlowGraph
from .schemas import ValidationReport

log = logger.bind(component="validator")


def find_dead_ends(graph: FlowGraph) -> List[str]:
    return [n.id for n in graph if graph.out_degree(n.id) == 0]


def reachable_from(graph: FlowGraph, start: str) -> Set[str]:
    if start not in graph.graph:
        return set()
    return {start} | nx.descendants(graph.graph, start)


def find_orphans(graph: FlowGraph) -> List[str]:
    entry = graph.first_node
    if entry is None:
        return []
    seen = reachable_from(graph, entry.id)
    return [n.id for n in graph if n.id not in seen]


def has_cycle(graph: FlowGraph) -> bool:
    """True if any directed cycle exists, self-loops included."""
    return not nx.is_directed_acyclic_graph(graph.graph)


def completeness_score(dead_ends: int, orphans: int, cycle: bool,
                       weights: Optional[ScoringWeights] = None) -> float:
    w = weights or ScoringWeights()
    score = 100.0
    score -= w.dead_end_penalty * dead_ends
    score -= w.orphan_penalty * orphans
    if cycle:
        score -= w.cycle_penalty
    return max(0.0, min(100.0, score))


def _uncovered_actions(graph: FlowGraph) -> List[str]:
    uncovered = []
    for node in graph:
        triggers = {e.trigger for e in graph.edges_from(node.id)}
        for action in node.actions:
            bare = action[:-len("_button")] if action.endswith("_button") else action
            if action not in triggers and bare not in triggers:
                uncovered.append(f"{node.id}.{action}")
    return uncovered


def _suggestions(graph: FlowGraph) -> List[str]:
    return [
        f"Consider adding more navigation options from {n.name}"
        for n in graph
        if len(graph.successors(n.id)) < 2
    ]


def _incomplete_screens(graph: FlowGraph) -> List[str]:
    """Screens missing one of the show/do/process ingredients."""
    issues = []
    for node in graph:
        outgoing = graph.edges_from(node.id)
        if not node.actions:
            issues.append(f"{node.id}: missing SHOW elements")
        if not any(e.trigger for e in outgoing):
            issues.append(f"{node.id}: missing DO actions")
        if not outgoing:
            issues.append(f"{node.id}: missing PROCESS logic")
    return issues


def validate(graph: FlowGraph, weights: Optional[ScoringWeights] = None) -> ValidationReport:
    """Produce a full ValidationReport. Never raises for a built graph."""
    warnings = list(graph.warnings)
    entry = graph.first_node
    if entry is None:
        warnings.append(f"{EmptyGraphWarning.__name__}: graph has no screens, no entry point")
        log.warning("Validating an empty graph")

    dead_ends = find_dead_ends(graph)
    orphans = find_orphans(graph)
    cycle = has_cycle(graph)
    score = completeness_score(len(dead_ends), len(orphans), cycle, weights)

    report = ValidationReport(
        dead_ends=dead_ends,
        orphaned_screens=orphans,
        cycle_present=cycle,
        completeness_score=score,
        entry_point=entry.id if entry else None,
        uncovered_actions=_uncovered_actions(graph),
        suggestions=_suggestions(graph),
        incomplete_screens=_incomplete_screens(graph),
        warnings=warnings,
    )
    log.info(
        "Validation: {} dead ends, {} orphans, cycle={}, score={}",
        len(dead_ends), len(orphans), cycle, score,
    )
    return report
