"""
FlowSession: one specification snapshot, its layout and its live monitor.

Hosts push interaction events and layout commands into an inbound queue;
each tick drains the queue, advances the force layout and samples the
monitor. Snapshots and the export payload are read from here.
"""

from __future__ import annotations
import asyncio
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from loguru import logger

from .config import FlowMapSettings
from .errors import MalformedGraphError, SessionError
from .graph_model import FlowGraph
from .layout import LayoutEngine
from .monitor import FlowMonitor
from .schemas import ExportPayload, LayoutSnapshot, MonitorSnapshot, ValidationReport
from .types import InteractionEvent, SpecSnapshot
from .validator import validate

log = logger.bind(component="session")


@dataclass(frozen=True)
class LayoutCommand:
    """Operator request from the diagram UI: pin, unpin or reset."""
    action: str
    node_id: Optional[str] = None


Inbound = Union[InteractionEvent, LayoutCommand]


class FlowSession:
    """Owns one graph, its layout and the live monitor.

    Lifecycle: create -> load(snapshot) -> start -> push events / tick ->
    query snapshots -> stop. Inbound events are queued and applied only when
    the host drains them, so nothing mutates monitor state mid-tick.
    """

    def __init__(self, settings: Optional[FlowMapSettings] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.settings = settings or FlowMapSettings()
        self.clock = clock
        self.snapshot_spec: Optional[SpecSnapshot] = None
        self.graph: Optional[FlowGraph] = None
        self.report: Optional[ValidationReport] = None
        self.layout: Optional[LayoutEngine] = None
        self.monitor = FlowMonitor(settings=self.settings.monitor, weights=self.settings.scoring)
        self.inbox: Deque[Inbound] = deque()
        self.console: List[str] = []
        self.metrics: Dict[str, Any] = {"loads": 0, "rejected_loads": 0, "layout_ticks": 0, "monitor_ticks": 0, "events": 0}

    def log(self, msg: str):
        self.console.append(msg)
        log.info(msg)

    # ---------- Specification ----------
    def load(self, snapshot: Union[SpecSnapshot, Dict[str, Any], List[Any]]) -> ValidationReport:
        """Rebuild everything from a new snapshot.

        A malformed snapshot raises MalformedGraphError and leaves the
        previous graph, layout and report in place.
        """
        try:
            spec = SpecSnapshot.parse(snapshot)
            graph = FlowGraph.from_snapshot(spec)
        except MalformedGraphError as e:
            self.metrics["rejected_loads"] += 1
            self.log(f"[load] Rejected snapshot: {e}")
            raise
        self.snapshot_spec = spec
        self.graph = graph
        self.layout = LayoutEngine(graph, self.settings.layout, seed=self.settings.seed)
        self.monitor.rebind(graph)
        self.metrics["loads"] += 1
        self.log(f"[load] {len(graph)} screens, {len(graph.edges)} transitions, {self.layout.strategy} layout")
        return self.revalidate()

    def revalidate(self) -> ValidationReport:
        if self.graph is None:
            raise SessionError("No specification loaded")
        self.report = validate(self.graph, self.settings.scoring)
        return self.report

    def _require_graph(self) -> FlowGraph:
        if self.graph is None:
            raise SessionError("No specification loaded")
        return self.graph

    # ---------- Monitor lifecycle ----------
    def start(self, now: Optional[float] = None) -> bool:
        self._require_graph()
        return self.monitor.start(self._now(now))

    def stop(self) -> None:
        self.monitor.stop()
        self.inbox.clear()
        self.log("[monitor] stopped")

    @property
    def running(self) -> bool:
        return self.monitor.running

    # ---------- Inbound queue ----------
    def push_event(self, event: Union[InteractionEvent, Dict[str, Any]]) -> None:
        if not isinstance(event, InteractionEvent):
            event = InteractionEvent.model_validate(event)
        self.inbox.append(event)

    def pin(self, node_id: str) -> None:
        self.inbox.append(LayoutCommand("pin", node_id))

    def unpin(self, node_id: str) -> None:
        self.inbox.append(LayoutCommand("unpin", node_id))

    def reset_layout(self) -> None:
        self.inbox.append(LayoutCommand("reset"))

    def drain(self, now: Optional[float] = None) -> int:
        """Apply everything queued so far. Returns how many items were applied.

        Events are re-stamped with the session clock, so a producer on another
        time base (wall clock, another process) cannot leave an edge active.
        """
        now = self._now(now)
        graph_changed = False
        applied = 0
        while self.inbox:
            item = self.inbox.popleft()
            applied += 1
            match item:
                case InteractionEvent():
                    self.metrics["events"] += 1
                    if not self.monitor.running:
                        log.debug("Monitor not running, dropping event {}", item.action_label)
                        continue
                    if item.timestamp != now:
                        item = item.model_copy(update={"timestamp": now})
                    graph_changed |= self.monitor.handle_event(item)
                case LayoutCommand(action="pin", node_id=node_id):
                    self._require_layout().pin(node_id)
                case LayoutCommand(action="unpin", node_id=node_id):
                    self._require_layout().unpin(node_id)
                case LayoutCommand(action="reset"):
                    strategy = self._require_layout().reset()
                    self.log(f"[layout] reset, {strategy} placement")
                case _:
                    raise SessionError(f"Unsupported inbound item: {item!r}")
        if graph_changed:
            self.revalidate()
        return applied

    def _require_layout(self) -> LayoutEngine:
        if self.layout is None:
            raise SessionError("No specification loaded")
        return self.layout

    # ---------- Ticks ----------
    def layout_tick(self, now: Optional[float] = None) -> None:
        self._require_layout().tick(self._now(now))
        self.metrics["layout_ticks"] += 1

    def monitor_tick(self, now: Optional[float] = None) -> None:
        if not self.monitor.running:
            return
        self.monitor.sample(self._now(now))
        self.metrics["monitor_ticks"] += 1

    def tick(self, now: Optional[float] = None) -> None:
        """One host tick: drain the inbox, advance layout, sample the monitor."""
        now = self._now(now)
        self.drain(now)
        if self.layout is not None:
            self.layout_tick(now)
        self.monitor_tick(now)

    async def run(self, stop: asyncio.Event) -> None:
        """Drive layout and monitor as two periodic tasks until ``stop`` is set."""
        self.start()

        async def every(interval: float, step: Callable[[], None]):
            while not stop.is_set():
                step()
                try:
                    await asyncio.wait_for(stop.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass

        try:
            await asyncio.gather(
                every(self.settings.layout.tick_interval, self._host_step),
                every(self.settings.monitor.sample_interval, self.monitor_tick),
            )
        finally:
            stop.set()
            self.stop()

    def _host_step(self) -> None:
        self.drain()
        self.layout_tick()

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    # ---------- Outputs ----------
    def layout_snapshot(self, now: Optional[float] = None) -> LayoutSnapshot:
        return self._require_layout().snapshot(self._now(now))

    def monitor_snapshot(self) -> MonitorSnapshot:
        completeness = self.report.completeness_score if self.report else 0.0
        return self.monitor.snapshot(completeness)

    def export(self, now: Optional[float] = None) -> ExportPayload:
        """Bundle the source snapshot, report, layout and monitor state."""
        if self.snapshot_spec is None or self.report is None:
            raise SessionError("No specification loaded")
        return ExportPayload(
            exported_at=datetime.now(timezone.utc).isoformat(),
            specification=self.snapshot_spec,
            validation=self.report,
            layout=self.layout_snapshot(now),
            monitor=self.monitor_snapshot(),
        )
