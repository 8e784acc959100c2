"""
Graph construction tests: name/id resolution, malformed input, dropped
transitions and dynamic edges.
"""
import pytest

from flowmap.errors import MalformedGraphError
from flowmap.graph_model import FlowGraph
from flowmap.types import ScreenKind, SpecSnapshot


def test_transitions_resolve_by_name_and_id(todo_graph):
    assert list(todo_graph.nodes) == ["welcome", "list", "add"]
    assert len(todo_graph.edges) == 3
    assert todo_graph.successors("welcome") == ["list"]
    assert todo_graph.first_node.id == "welcome"


def test_unknown_source_is_rejected():
    spec = {
        "screens": [{"id": "a", "name": "A"}],
        "transitions": [{"source": "ghost", "trigger": "go", "destination": "a"}],
    }
    with pytest.raises(MalformedGraphError, match="unknown screen 'ghost'"):
        FlowGraph.from_snapshot(spec)


def test_unresolved_destination_is_dropped_with_warning():
    spec = {
        "screens": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
        "transitions": [
            {"source": "a", "trigger": "go", "destination": "b"},
            {"source": "b", "trigger": "later", "destination": "Missing"},
            {"source": "b", "trigger": "blank", "destination": "  "},
        ],
    }
    graph = FlowGraph.from_snapshot(spec)
    assert len(graph.edges) == 1
    assert graph.out_degree("b") == 0
    assert len(graph.warnings) == 2
    assert "Missing" in graph.warnings[0]


def test_duplicate_screen_id_is_rejected():
    spec = {"screens": [{"id": "a", "name": "A"}, {"id": "a", "name": "Again"}]}
    with pytest.raises(MalformedGraphError, match="Duplicate"):
        FlowGraph.from_snapshot(spec)


def test_self_loop_is_tolerated():
    spec = {
        "screens": [{"id": "feed", "name": "Feed"}],
        "transitions": [{"source": "feed", "trigger": "refresh", "destination": "feed"}],
    }
    graph = FlowGraph.from_snapshot(spec)
    assert graph.edges[0].is_self_loop
    assert graph.successors("feed") == ["feed"]


def test_parallel_triggers_share_topology_edge():
    spec = {
        "screens": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
        "transitions": [
            {"source": "a", "trigger": "open", "destination": "b"},
            {"source": "a", "trigger": "view", "destination": "b"},
        ],
    }
    graph = FlowGraph.from_snapshot(spec)
    assert graph.out_degree("a") == 2
    assert graph.graph.edges["a", "b"]["triggers"] == ["open", "view"]
    assert graph.find_edge("a", "b", "view").trigger == "view"
    assert graph.find_edge("a", "b", "nope").trigger == "open"


def test_classification_inferred_from_name():
    spec = {
        "screens": [
            {"id": "1", "name": "Login"},
            {"id": "2", "name": "Home Dashboard"},
            {"id": "3", "name": "Settings"},
            {"id": "4", "name": "Welcome Tour"},
            {"id": "5", "name": "Reports"},
            {"id": "6", "name": "Reports Admin", "classification": "MAIN"},
            {"id": "7", "name": "Profile", "classification": "not-a-kind"},
        ]
    }
    graph = FlowGraph.from_snapshot(spec)
    kinds = [n.classification for n in graph]
    assert kinds == [
        ScreenKind.AUTH, ScreenKind.MAIN, ScreenKind.ADMIN, ScreenKind.ONBOARDING,
        ScreenKind.FEATURE, ScreenKind.MAIN, ScreenKind.FEATURE,
    ]


def test_flat_tagged_records():
    records = [
        {"kind": "screen", "id": "a", "name": "A", "actions": "go"},
        {"kind": "transition", "source": "a", "trigger": "go", "destination": "b"},
        {"kind": "screen", "id": "b", "name": "B"},
    ]
    snapshot = SpecSnapshot.from_records(records)
    assert [s.id for s in snapshot.screens] == ["a", "b"]
    assert snapshot.screens[0].actions == ("go",)
    graph = FlowGraph.from_snapshot(records)
    assert graph.successors("a") == ["b"]


def test_unknown_record_kind_is_rejected():
    with pytest.raises(MalformedGraphError, match="Invalid specification record"):
        SpecSnapshot.from_records([{"kind": "widget", "id": "x"}])


def test_dynamic_edge_is_first_class(todo_graph):
    edge = todo_graph.add_dynamic_edge("add", "welcome", "cancel")
    assert edge.dynamic
    assert "welcome" in todo_graph.successors("add")
    assert todo_graph.to_dict()["edge_count"] == 4


def test_dynamic_edge_to_unknown_screen_is_rejected(todo_graph):
    with pytest.raises(MalformedGraphError):
        todo_graph.add_dynamic_edge("add", "ghost", "cancel")


def test_edge_activation_expires(todo_graph):
    edge = todo_graph.edges[0]
    edge.activate(10.0, 0.5)
    assert edge.is_active(10.1)
    assert not edge.is_active(10.6)
    assert todo_graph.active_edges(10.2) == [edge]
