from flowmap.graph_model import FlowGraph
from flowmap.types import SpecSnapshot


def make_graph(n: int, edges=(), kinds=None) -> FlowGraph:
    """Graph with screens s0..s{n-1} and (src, dst) index pairs as transitions."""
    screens = []
    for i in range(n):
        rec = {"id": f"s{i}", "name": f"Screen {i}"}
        if kinds:
            rec["classification"] = kinds[i % len(kinds)]
        screens.append(rec)
    transitions = [
        {"source": f"s{a}", "trigger": f"go{b}", "destination": f"s{b}"} for a, b in edges
    ]
    return FlowGraph.from_snapshot(SpecSnapshot.parse({"screens": screens, "transitions": transitions}))
