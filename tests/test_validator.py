"""
Structural validation tests: dead ends, reachability, cycles and the
completeness score.
"""
import pytest

from flowmap.config import ScoringWeights
from flowmap.graph_model import FlowGraph
from flowmap.validator import (
    completeness_score,
    find_orphans,
    has_cycle,
    reachable_from,
    validate,
)


def test_todo_app_scenario(todo_graph):
    report = validate(todo_graph)
    assert report.dead_ends == []
    assert report.orphaned_screens == []
    assert report.cycle_present is True
    assert report.completeness_score == 75
    assert report.entry_point == "welcome"
    assert report.uncovered_actions == []


def test_single_node_is_a_dead_end(graph_factory):
    report = validate(graph_factory(1))
    assert report.dead_ends == ["s0"]
    assert report.orphaned_screens == []
    assert report.cycle_present is False
    assert report.completeness_score == 80


def test_every_zero_out_degree_node_is_dead_end(graph_factory):
    graph = graph_factory(4, edges=[(0, 1), (2, 3)])
    report = validate(graph)
    assert report.dead_ends == ["s1", "s3"]
    assert report.orphaned_screens == ["s2", "s3"]
    # 100 - 2*20 - 2*15
    assert report.completeness_score == 30


def test_orphans_are_exactly_the_unreached(graph_factory):
    graph = graph_factory(6, edges=[(0, 1), (1, 2), (3, 4), (4, 0), (2, 2)])
    seen = reachable_from(graph, "s0")
    orphans = find_orphans(graph)
    assert set(orphans) == {n.id for n in graph} - seen
    assert not set(orphans) & seen


@pytest.mark.parametrize("order", [["a", "b", "c"], ["c", "b", "a"], ["b", "c", "a"]])
def test_two_node_cycle_found_from_any_start(order):
    spec = {
        "screens": [{"id": i, "name": i.upper()} for i in order],
        "transitions": [
            {"source": "a", "trigger": "go", "destination": "b"},
            {"source": "b", "trigger": "back", "destination": "a"},
        ],
    }
    assert has_cycle(FlowGraph.from_snapshot(spec)) is True


def test_self_loop_counts_as_cycle(graph_factory):
    assert has_cycle(graph_factory(2, edges=[(0, 1), (1, 1)])) is True


def test_dag_has_no_cycle(graph_factory):
    graph = graph_factory(5, edges=[(0, 1), (0, 2), (1, 3), (2, 3), (3, 4)])
    assert has_cycle(graph) is False


def test_deep_chain_does_not_recurse(graph_factory):
    n = 3000
    graph = graph_factory(n, edges=[(i, i + 1) for i in range(n - 1)])
    report = validate(graph)
    assert report.cycle_present is False
    assert report.dead_ends == [f"s{n - 1}"]
    assert report.orphaned_screens == []


def test_empty_graph_reports_no_entry_point():
    report = validate(FlowGraph.from_snapshot({"screens": [], "transitions": []}))
    assert report.entry_point is None
    assert report.orphaned_screens == []
    assert report.dead_ends == []
    assert report.completeness_score == 100
    assert any("EmptyGraphWarning" in w for w in report.warnings)


def test_score_is_monotone_and_clamped():
    previous = completeness_score(0, 0, False)
    assert previous == 100
    for dead, orphans, cycle in [(1, 0, False), (1, 1, False), (1, 1, True), (3, 2, True), (10, 10, True)]:
        score = completeness_score(dead, orphans, cycle)
        assert 0 <= score <= 100
        assert score <= previous
        previous = score
    assert completeness_score(10, 10, True) == 0


def test_custom_weights():
    weights = ScoringWeights(dead_end_penalty=5, orphan_penalty=5, cycle_penalty=5)
    assert completeness_score(1, 1, True, weights) == 85


def test_dropped_edge_leaves_dead_end():
    spec = {
        "screens": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
        "transitions": [
            {"source": "a", "trigger": "go", "destination": "b"},
            {"source": "b", "trigger": "next", "destination": "Nowhere"},
        ],
    }
    report = validate(FlowGraph.from_snapshot(spec))
    assert report.dead_ends == ["b"]
    assert any("Nowhere" in w for w in report.warnings)


def test_uncovered_actions_and_button_suffix():
    spec = {
        "screens": [
            {"id": "form", "name": "Form", "actions": ["save_button", "cancel"]},
            {"id": "done", "name": "Done"},
        ],
        "transitions": [{"source": "form", "trigger": "save", "destination": "done"}],
    }
    report = validate(FlowGraph.from_snapshot(spec))
    assert report.uncovered_actions == ["form.cancel"]
    assert len(report.suggestions) == 2


def test_report_serializes_with_camel_case(todo_graph):
    data = validate(todo_graph).to_dict()
    assert data["deadEnds"] == []
    assert data["orphanedScreens"] == []
    assert data["cyclePresent"] is True
    assert data["completenessScore"] == 75


def test_cycle_outside_entry_component(graph_factory):
    graph = graph_factory(5, edges=[(0, 1), (2, 3), (3, 4), (4, 2)])
    assert reachable_from(graph, "s0") == {"s0", "s1"}
    assert has_cycle(graph) is True


def test_dynamic_edge_closes_cycle(graph_factory):
    graph = graph_factory(3, edges=[(0, 1), (1, 2)])
    assert has_cycle(graph) is False
    graph.add_dynamic_edge("s2", "s0", "restart")
    assert has_cycle(graph) is True


def test_incomplete_screens_name_missing_ingredients():
    spec = {
        "screens": [
            {"id": "home", "name": "Home", "actions": ["open"]},
            {"id": "detail", "name": "Detail"},
        ],
        "transitions": [{"source": "home", "trigger": "open", "destination": "detail"}],
    }
    report = validate(FlowGraph.from_snapshot(spec))
    assert report.incomplete_screens == [
        "detail: missing SHOW elements",
        "detail: missing DO actions",
        "detail: missing PROCESS logic",
    ]
    # diagnostic only: 100 - one dead end
    assert report.completeness_score == 80
    assert report.to_dict()["incompleteScreens"] == report.incomplete_screens


def test_complete_screens_report_nothing():
    spec = {
        "screens": [
            {"id": "a", "name": "A", "actions": ["next"]},
            {"id": "b", "name": "B", "actions": ["back"]},
        ],
        "transitions": [
            {"source": "a", "trigger": "next", "destination": "b"},
            {"source": "b", "trigger": "back", "destination": "a"},
        ],
    }
    assert validate(FlowGraph.from_snapshot(spec)).incomplete_screens == []
