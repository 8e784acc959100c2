"""
FlowMonitor: live classification of user interaction into phases.

Each sample derives a phase from three signals, highest precedence first:
    active edge transition        -> process
    recent visual change          -> show
    outgoing triggers available   -> do
    none of the above             -> idle

Every phase *change* is checked against LEGAL_TRANSITIONS. Legal changes
count as completed flow steps, illegal ones as broken flow steps; both feed
the behavior half of the real-time compliance score.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, List, Optional, Tuple

from loguru import logger

from .config import MonitorSettings, ScoringWeights
from .graph_model import FlowEdge, FlowGraph
from .schemas import MonitorSnapshot, PhaseSampleView, TemplateMatch
from .templates import match_templates, top_matches
from .types import InteractionEvent, Phase

log = logger.bind(component="monitor")

LEGAL_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.IDLE: frozenset({Phase.SHOW, Phase.DO}),
    Phase.SHOW: frozenset({Phase.DO, Phase.SHOW}),
    Phase.DO: frozenset({Phase.PROCESS, Phase.SHOW}),
    Phase.PROCESS: frozenset({Phase.SHOW, Phase.DO, Phase.PROCESS}),
}


def is_legal(previous: Phase, current: Phase) -> bool:
    return current in LEGAL_TRANSITIONS.get(previous, frozenset())


@dataclass(frozen=True)
class PhaseSample:
    timestamp: float
    phase: Phase
    active_transition: Optional[str] = None


@dataclass
class MonitorState:
    """Per-session statistics. Only ``FlowMonitor.stop`` clears them."""
    history_size: int = 50
    screen_history_size: int = 10
    flow_instance_limit: int = 20
    phase: Phase = Phase.IDLE
    current_screen: Optional[str] = None
    last_visual_change: Optional[float] = None
    total_transitions: int = 0
    completed_flows: int = 0
    broken_flows: int = 0
    interactions: int = 0
    rejected_events: int = 0
    history: Deque[PhaseSample] = field(init=False)
    screen_history: Deque[str] = field(init=False)
    flow_instances: Deque[List[Phase]] = field(init=False)

    def __post_init__(self):
        self.history = deque(maxlen=self.history_size)
        self.screen_history = deque(maxlen=self.screen_history_size)
        self.flow_instances = deque(maxlen=self.flow_instance_limit)

    @property
    def current_flow(self) -> Optional[List[Phase]]:
        return self.flow_instances[-1] if self.flow_instances else None


class FlowMonitor:
    def __init__(self, graph: Optional[FlowGraph] = None,
                 settings: Optional[MonitorSettings] = None,
                 weights: Optional[ScoringWeights] = None):
        self.settings = settings or MonitorSettings()
        self.weights = weights or ScoringWeights()
        self.graph = graph
        self.running = False
        self.state = self._new_state()

    def _new_state(self) -> MonitorState:
        s = self.settings
        return MonitorState(
            history_size=s.history_size,
            screen_history_size=s.screen_history_size,
            flow_instance_limit=s.flow_instance_limit,
        )

    # ─── Lifecycle ───────────────────────────────────────────────

    def start(self, now: float = 0.0) -> bool:
        """Begin monitoring on the entry screen. A second start is a no-op."""
        if self.running:
            return False
        self.running = True
        entry = self.graph.first_node if self.graph else None
        if entry is not None:
            self._enter_screen(entry.id)
            # The entry screen rendering counts as the first visual change.
            self.note_visual_change(now)
        log.info("Monitor started on screen {}", self.state.current_screen)
        return True

    def stop(self) -> None:
        self.running = False
        self.state = self._new_state()
        log.info("Monitor stopped, statistics reset")

    def rebind(self, graph: FlowGraph) -> None:
        """Follow a re-parsed graph, keeping statistics."""
        self.graph = graph
        current = self.state.current_screen
        if current is not None and current not in graph:
            entry = graph.first_node
            self.state.current_screen = entry.id if entry else None
            log.debug("Screen {} vanished on re-parse, moved to {}", current, self.state.current_screen)

    # ─── Signals ─────────────────────────────────────────────────

    def note_visual_change(self, timestamp: float) -> None:
        self.state.last_visual_change = timestamp

    def _enter_screen(self, screen_id: str) -> None:
        self.state.current_screen = screen_id
        self.state.screen_history.append(screen_id)

    def derive_phase(self, now: float) -> Tuple[Phase, Optional[str]]:
        active = self._active_transition(now)
        if active is not None:
            return Phase.PROCESS, active.key
        seen = self.state.last_visual_change
        if seen is not None and seen <= now and now - seen <= self.settings.show_recency:
            return Phase.SHOW, None
        current = self.state.current_screen
        if self.graph is not None and current is not None and self.graph.out_degree(current) > 0:
            return Phase.DO, None
        return Phase.IDLE, None

    def _active_transition(self, now: float) -> Optional[FlowEdge]:
        if self.graph is None:
            return None
        active = self.graph.active_edges(now)
        return active[0] if active else None

    # ─── Sampling ────────────────────────────────────────────────

    def sample(self, now: float) -> PhaseSample:
        """Take one periodic sample and record it."""
        phase, transition = self.derive_phase(now)
        return self.observe_phase(phase, now, transition)

    def observe_phase(self, phase: Phase, timestamp: float,
                      active_transition: Optional[str] = None) -> PhaseSample:
        """Record a phase observation; legality is only judged on a change."""
        sample = PhaseSample(timestamp, phase, active_transition)
        previous = self.state.phase
        if phase != previous:
            self._on_phase_change(previous, phase)
        self.state.history.append(sample)
        return sample

    def _on_phase_change(self, previous: Phase, current: Phase) -> None:
        st = self.state
        st.total_transitions += 1
        if is_legal(previous, current):
            st.completed_flows += 1
        else:
            st.broken_flows += 1
            log.debug("Broken flow: {} -> {}", previous.value, current.value)
        if current == Phase.SHOW:
            st.flow_instances.append([Phase.SHOW])
        elif st.current_flow is not None:
            st.current_flow.append(current)
        st.phase = current

    # ─── Interaction events ──────────────────────────────────────

    def handle_event(self, event: InteractionEvent) -> bool:
        """Apply one navigation. Returns True if the graph gained an edge."""
        graph = self.graph
        if graph is None or event.from_screen_id not in graph or event.to_screen_id not in graph:
            self.state.rejected_events += 1
            log.warning(
                "Rejected event {} -> {}: unknown screen",
                event.from_screen_id, event.to_screen_id,
            )
            return False
        if event.from_screen_id == event.to_screen_id and not event.is_refresh:
            log.debug("Already on {}, ignoring '{}'", event.to_screen_id, event.action_label)
            return False

        created = False
        edge = graph.find_edge(event.from_screen_id, event.to_screen_id, event.action_label)
        if edge is None:
            edge = graph.add_dynamic_edge(event.from_screen_id, event.to_screen_id, event.action_label)
            created = True
        duration = self.settings.transition_duration
        edge.activate(event.timestamp, duration)

        self.state.interactions += 1
        self._enter_screen(event.to_screen_id)
        self.note_visual_change(event.timestamp + duration)
        self.sample(event.timestamp)
        log.debug("Navigation {} via '{}'", edge.key, event.action_label)
        return created

    # ─── Scoring ─────────────────────────────────────────────────

    def behavior_score(self) -> float:
        w = self.weights
        st = self.state
        score = 100.0
        total = st.completed_flows + st.broken_flows
        if total:
            score -= w.broken_flow_penalty * (st.broken_flows / total)
            score = max(score, w.completed_flow_floor * (st.completed_flows / total))
        recent = list(st.history)[-w.stagnation_window:]
        if recent:
            newest = recent[-1].phase
            stagnation = sum(1 for s in recent if s.phase == newest) / len(recent)
            score -= w.stagnation_penalty * stagnation
        return max(0.0, min(100.0, score))

    def realtime_score(self, completeness: float) -> float:
        w = self.weights
        score = w.static_weight * completeness + w.runtime_weight * self.behavior_score()
        return round(max(0.0, min(100.0, score)), 2)

    # ─── Template matching ───────────────────────────────────────

    def observed_phases(self) -> List[Phase]:
        """Phases of the most recent samples, oldest first.

        With ``collapse_repeats`` consecutive repeats are merged before the
        window is applied.
        """
        phases = [s.phase for s in self.state.history]
        if self.settings.collapse_repeats:
            phases = [p for i, p in enumerate(phases) if i == 0 or phases[i - 1] != p]
        return phases[-self.settings.match_window:]

    def exposed_actions(self) -> List[str]:
        graph = self.graph
        if graph is None:
            return []
        node = graph.node(self.state.current_screen) if self.state.current_screen else None
        if node is None:
            return graph.triggers()
        labels = list(node.actions)
        labels.extend(e.trigger for e in graph.edges_from(node.id) if e.trigger)
        return labels

    def template_matches(self) -> List[TemplateMatch]:
        s = self.settings
        return match_templates(
            self.observed_phases(), self.exposed_actions(),
            threshold=s.match_threshold,
            recommend_compatibility=s.recommend_compatibility,
            recommend_coverage=s.recommend_coverage,
        )

    def snapshot(self, completeness: float) -> MonitorSnapshot:
        st = self.state
        matches = self.template_matches()
        return MonitorSnapshot(
            running=self.running,
            phase=st.phase,
            current_screen=st.current_screen,
            realtime_score=self.realtime_score(completeness),
            behavior_score=round(self.behavior_score(), 2),
            total_transitions=st.total_transitions,
            completed_flows=st.completed_flows,
            broken_flows=st.broken_flows,
            interactions=st.interactions,
            rejected_events=st.rejected_events,
            screen_history=list(st.screen_history),
            recent_samples=[
                PhaseSampleView(timestamp=s.timestamp, phase=s.phase, active_transition=s.active_transition)
                for s in list(st.history)[-self.weights.stagnation_window:]
            ],
            matches=top_matches(matches, self.settings.top_matches),
            recommendations=[m.recommendation for m in matches if m.recommendation],
        )
