"""
LayoutEngine: force-directed placement of screens for the flow diagram.

One call to ``tick`` applies, in order: pairwise repulsion, a center-ward
pull, edge springs, damped integration with canvas clamping, and the edge
highlight animation. The engine owns node positions, velocities and edge
animation progress; nothing else writes them.

Pinned nodes are left exactly where they are.
"""

from __future__ import annotations
import math
import random
from typing import Dict, List, Optional, Tuple

from loguru import logger

from .config import LayoutSettings
from .errors import SimulationInstabilityWarning
from .graph_model import FlowGraph, ScreenNode
from .schemas import EdgeState, LayoutSnapshot, NodePosition
from .types import ScreenKind

log = logger.bind(component="layout")

# Golden angle spreads nodes of the same cluster so none start coincident.
_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


class LayoutEngine:
    def __init__(self, graph: FlowGraph, settings: Optional[LayoutSettings] = None, seed: int = 7):
        self.graph = graph
        self.settings = settings or LayoutSettings()
        self.seed = seed
        self.tick_count = 0
        self.strategy = "linear"
        self.warnings: List[str] = []
        self._clamp_streak = 0
        self.initial_placement()

    # ─── Geometry helpers ────────────────────────────────────────

    @property
    def center(self) -> Tuple[float, float]:
        return (self.settings.width / 2.0, self.settings.height / 2.0)

    @property
    def half_diagonal(self) -> float:
        return math.hypot(self.settings.width / 2.0, self.settings.height / 2.0)

    # ─── Initial placement ───────────────────────────────────────

    def initial_placement(self) -> str:
        """Place every node from scratch and zero its velocity."""
        nodes = list(self.graph)
        n = len(nodes)
        if n < 4:
            self.strategy = "linear"
            self._place_linear(nodes)
        elif n <= 6:
            self.strategy = "circular"
            self._place_circular(nodes)
        else:
            self.strategy = "clustered"
            self._place_clustered(nodes)
        for node in nodes:
            node.vx = node.vy = 0.0
        self._clamp_streak = 0
        log.debug("Initial {} placement for {} nodes", self.strategy, n)
        return self.strategy

    def _place_linear(self, nodes: List[ScreenNode]) -> None:
        s = self.settings
        step = s.width / (len(nodes) + 1) if nodes else 0.0
        for i, node in enumerate(nodes):
            node.x = step * (i + 1)
            node.y = s.height / 2.0

    def _place_circular(self, nodes: List[ScreenNode]) -> None:
        cx, cy = self.center
        radius = min(self.settings.width, self.settings.height) * 0.35
        for i, node in enumerate(nodes):
            angle = 2.0 * math.pi * i / len(nodes) - math.pi / 2.0
            node.x = cx + radius * math.cos(angle)
            node.y = cy + radius * math.sin(angle)

    def _place_clustered(self, nodes: List[ScreenNode]) -> None:
        s = self.settings
        rng = random.Random(self.seed)
        centroids = self._cluster_centroids()
        per_cluster: Dict[ScreenKind, int] = {}
        for node in nodes:
            k = per_cluster.get(node.classification, 0)
            per_cluster[node.classification] = k + 1
            ox, oy = centroids[node.classification]
            # Spiral out from the centroid, then jitter.
            r = s.min_distance * math.sqrt(k)
            theta = k * _GOLDEN_ANGLE
            node.x = ox + r * math.cos(theta) + rng.uniform(-s.cluster_jitter, s.cluster_jitter)
            node.y = oy + r * math.sin(theta) + rng.uniform(-s.cluster_jitter, s.cluster_jitter)
            self._clamp(node)

    def _cluster_centroids(self) -> Dict[ScreenKind, Tuple[float, float]]:
        cx, cy = self.center
        radius = min(self.settings.width, self.settings.height) * 0.3
        kinds = list(ScreenKind)
        out = {}
        for i, kind in enumerate(kinds):
            angle = 2.0 * math.pi * i / len(kinds) - math.pi / 2.0
            out[kind] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
        return out

    # ─── Operator commands ───────────────────────────────────────

    def pin(self, node_id: str) -> bool:
        node = self.graph.node(node_id)
        if node is None:
            return False
        node.pinned = True
        node.vx = node.vy = 0.0
        return True

    def unpin(self, node_id: str) -> bool:
        node = self.graph.node(node_id)
        if node is None:
            return False
        node.pinned = False
        return True

    def reset(self) -> str:
        """Unpin everything and start the simulation over."""
        for node in self.graph:
            node.pinned = False
        self.tick_count = 0
        self.warnings.clear()
        return self.initial_placement()

    # ─── Simulation ──────────────────────────────────────────────

    def tick(self, now: float = 0.0) -> None:
        self._apply_repulsion()
        self._apply_center_pull()
        self._apply_springs()
        self._integrate()
        self._advance_edges(now)
        self.tick_count += 1

    def _apply_repulsion(self) -> None:
        s = self.settings
        nodes = list(self.graph)
        for i, a in enumerate(nodes):
            for b in nodes[i + 1:]:
                if a.pinned and b.pinned:
                    continue
                dx = a.x - b.x
                dy = a.y - b.y
                dist = math.hypot(dx, dy)
                if dist >= s.repulsion_cutoff:
                    continue
                if dist > 0.0:
                    ux, uy = dx / dist, dy / dist
                else:
                    ux, uy = 1.0, 0.0
                d = max(dist, s.min_distance)
                force = s.repulsion_strength / (d * d)
                if not a.pinned:
                    a.vx += force * ux
                    a.vy += force * uy
                if not b.pinned:
                    b.vx -= force * ux
                    b.vy -= force * uy

    def _apply_center_pull(self) -> None:
        s = self.settings
        cx, cy = self.center
        limit = s.center_pull_fraction * self.half_diagonal
        for node in self.graph:
            if node.pinned:
                continue
            dx = cx - node.x
            dy = cy - node.y
            if math.hypot(dx, dy) > limit:
                node.vx += dx * s.center_pull_strength
                node.vy += dy * s.center_pull_strength

    def _apply_springs(self) -> None:
        s = self.settings
        for edge in self.graph.edges:
            if edge.is_self_loop:
                continue
            a = self.graph.node(edge.source)
            b = self.graph.node(edge.target)
            dx = b.x - a.x
            dy = b.y - a.y
            dist = math.hypot(dx, dy)
            if dist <= s.rest_distance:
                continue
            force = s.spring_strength * (dist - s.rest_distance)
            ux, uy = dx / dist, dy / dist
            if not a.pinned:
                a.vx += force * ux
                a.vy += force * uy
            if not b.pinned:
                b.vx -= force * ux
                b.vy -= force * uy

    def _integrate(self) -> None:
        free = 0
        clamped = 0
        for node in self.graph:
            if node.pinned:
                continue
            free += 1
            node.vx *= self.settings.damping
            node.vy *= self.settings.damping
            node.x += node.vx
            node.y += node.vy
            if self._clamp(node):
                clamped += 1
        self._track_instability(free, clamped)

    def _clamp(self, node: ScreenNode) -> bool:
        """Keep a node inside the canvas, zeroing velocity on a clamped axis."""
        s = self.settings
        lo_x, hi_x = s.margin, s.width - s.margin
        lo_y, hi_y = s.margin, s.height - s.margin
        hit = False
        if node.x < lo_x or node.x > hi_x:
            node.x = min(max(node.x, lo_x), hi_x)
            node.vx = 0.0
            hit = True
        if node.y < lo_y or node.y > hi_y:
            node.y = min(max(node.y, lo_y), hi_y)
            node.vy = 0.0
            hit = True
        return hit

    def _track_instability(self, free: int, clamped: int) -> None:
        if free and clamped * 2 > free:
            self._clamp_streak += 1
        else:
            self._clamp_streak = 0
        if self._clamp_streak == self.settings.instability_ticks:
            msg = (
                f"{SimulationInstabilityWarning.__name__}: {clamped}/{free} nodes clamped "
                f"for {self._clamp_streak} consecutive ticks"
            )
            self.warnings.append(msg)
            log.warning(msg)

    def _advance_edges(self, now: float) -> None:
        step = self.settings.edge_progress_step
        for edge in self.graph.edges:
            if edge.is_active(now):
                edge.progress += step
                if edge.progress >= 1.0:
                    edge.progress -= 1.0

    # ─── Snapshots ───────────────────────────────────────────────

    def positions(self) -> List[NodePosition]:
        return [
            NodePosition(
                id=n.id, x=n.x, y=n.y, vx=n.vx, vy=n.vy,
                pinned=n.pinned, classification=n.classification.value,
            )
            for n in self.graph
        ]

    def edge_states(self, now: float) -> List[EdgeState]:
        return [
            EdgeState(
                source=e.source, target=e.target, trigger=e.trigger,
                active=e.is_active(now), progress=e.progress, dynamic=e.dynamic,
            )
            for e in self.graph.edges
        ]

    def snapshot(self, now: float) -> LayoutSnapshot:
        return LayoutSnapshot(
            tick=self.tick_count,
            strategy=self.strategy,
            nodes=self.positions(),
            edges=self.edge_states(now),
            warnings=list(self.warnings),
        )
