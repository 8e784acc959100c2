"""
FlowGraph: the screens-and-transitions graph of one specification snapshot.

Nodes are screens, edges are navigations triggered by a user action. The
topology lives in a networkx DiGraph; the per-node simulation state and the
per-edge highlight state live on plain dataclasses so the layout engine can
mutate them every tick without touching the topology.

Unlike a DAG-enforced tree, cycles and self-loops are legal here: the
validator reports them, construction never rejects them.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import networkx as nx
from loguru import logger

from .errors import MalformedGraphError
from .types import ScreenKind, ScreenRecord, SpecSnapshot

log = logger.bind(component="graph")


@dataclass
class ScreenNode:
    id: str
    name: str
    classification: ScreenKind
    record: Optional[ScreenRecord] = None
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    pinned: bool = False

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def velocity(self) -> Tuple[float, float]:
        return (self.vx, self.vy)

    @property
    def actions(self) -> Tuple[str, ...]:
        return self.record.actions if self.record else ()


@dataclass
class FlowEdge:
    source: str
    target: str
    trigger: str = ""
    active_until: Optional[float] = None
    progress: float = 0.0
    dynamic: bool = False

    @property
    def key(self) -> str:
        return f"{self.source}->{self.target}"

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def activate(self, now: float, duration: float) -> None:
        self.active_until = now + duration
        self.progress = 0.0

    def is_active(self, now: float) -> bool:
        return self.active_until is not None and now < self.active_until


class FlowGraph:
    """Screens and transitions of one snapshot, in specification order."""

    def __init__(self):
        self.graph: nx.DiGraph = nx.DiGraph()
        self.nodes: Dict[str, ScreenNode] = {}
        self.edges: List[FlowEdge] = []
        self._outgoing: Dict[str, List[FlowEdge]] = {}
        self.warnings: List[str] = []

    # ─── Construction ────────────────────────────────────────────

    @classmethod
    def from_snapshot(cls, snapshot: Union[SpecSnapshot, Dict[str, Any], List[Any]]) -> "FlowGraph":
        """Build a graph, or raise MalformedGraphError without returning a partial one."""
        snapshot = SpecSnapshot.parse(snapshot)
        fg = cls()
        by_name: Dict[str, str] = {}
        for record in snapshot.screens:
            if record.id in fg.nodes:
                raise MalformedGraphError(f"Duplicate screen id '{record.id}'")
            fg._add_node(ScreenNode(
                id=record.id,
                name=record.name,
                classification=record.resolved_kind(),
                record=record,
            ))
            by_name.setdefault(record.name, record.id)

        def resolve(ref: Optional[str]) -> Optional[str]:
            if ref is None:
                return None
            if ref in fg.nodes:
                return ref
            return by_name.get(ref)

        for tr in snapshot.transitions:
            src = resolve(tr.source)
            if src is None:
                raise MalformedGraphError(
                    f"Transition '{tr.trigger}' starts at unknown screen '{tr.source}'"
                )
            dst = resolve(tr.destination)
            if dst is None:
                msg = f"Dropped transition {tr.source} --{tr.trigger}--> {tr.destination}: destination unresolved"
                fg.warnings.append(msg)
                log.warning(msg)
                continue
            fg._add_edge(FlowEdge(source=src, target=dst, trigger=tr.trigger))

        log.debug("Graph built: {} screens, {} transitions", len(fg.nodes), len(fg.edges))
        return fg

    def _add_node(self, node: ScreenNode) -> None:
        self.nodes[node.id] = node
        self.graph.add_node(node.id)

    def _add_edge(self, edge: FlowEdge) -> None:
        if edge.source not in self.nodes or edge.target not in self.nodes:
            raise MalformedGraphError(f"Edge {edge.key} references an unknown screen")
        self.edges.append(edge)
        self._outgoing.setdefault(edge.source, []).append(edge)
        if self.graph.has_edge(edge.source, edge.target):
            self.graph.edges[edge.source, edge.target]["triggers"].append(edge.trigger)
        else:
            self.graph.add_edge(edge.source, edge.target, triggers=[edge.trigger])

    def add_dynamic_edge(self, source: str, target: str, trigger: str) -> FlowEdge:
        """Record a live navigation that the specification never declared."""
        edge = FlowEdge(source=source, target=target, trigger=trigger, dynamic=True)
        self._add_edge(edge)
        log.info("Dynamic transition {} --{}--> {}", source, trigger, target)
        return edge

    # ─── Read access ─────────────────────────────────────────────

    def node(self, node_id: str) -> Optional[ScreenNode]:
        return self.nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[ScreenNode]:
        return iter(self.nodes.values())

    @property
    def first_node(self) -> Optional[ScreenNode]:
        """Entry point by convention: the first screen in specification order."""
        return next(iter(self.nodes.values()), None)

    def edges_from(self, node_id: str) -> List[FlowEdge]:
        return list(self._outgoing.get(node_id, ()))

    def successors(self, node_id: str) -> List[str]:
        if node_id not in self.graph:
            return []
        return list(self.graph.successors(node_id))

    def out_degree(self, node_id: str) -> int:
        return len(self.edges_from(node_id))

    def find_edge(self, source: str, target: str, trigger: Optional[str] = None) -> Optional[FlowEdge]:
        """Exact trigger match first, then any edge between the pair."""
        candidates = [e for e in self._outgoing.get(source, ()) if e.target == target]
        if trigger is not None:
            for e in candidates:
                if e.trigger == trigger:
                    return e
        return candidates[0] if candidates else None

    def active_edges(self, now: float) -> List[FlowEdge]:
        return [e for e in self.edges if e.is_active(now)]

    def triggers(self) -> List[str]:
        return [e.trigger for e in self.edges if e.trigger]

    # ─── Visualization / Export ──────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_count": self.graph.number_of_nodes(),
            "edge_count": len(self.edges),
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "classification": n.classification.value,
                    "successors": self.successors(n.id),
                }
                for n in self.nodes.values()
            ],
            "edges": [
                {"source": e.source, "target": e.target, "trigger": e.trigger, "dynamic": e.dynamic}
                for e in self.edges
            ],
        }
