"""Pydantic schemas for everything flowmap hands to collaborators.

Reports and snapshots serialize with camelCase aliases so a diagnostics
panel or an exported document reads ``deadEnds`` / ``completenessScore``.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .types import Phase, SpecSnapshot


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ValidationReport(_Schema):
    """Structural soundness of one graph. Always rebuilt, never patched."""
    dead_ends: List[str] = Field(default_factory=list)
    orphaned_screens: List[str] = Field(default_factory=list)
    cycle_present: bool = False
    completeness_score: float = Field(default=100.0, ge=0.0, le=100.0)
    entry_point: Optional[str] = None
    uncovered_actions: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    incomplete_screens: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not (self.dead_ends or self.orphaned_screens or self.cycle_present)


class NodePosition(_Schema):
    id: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    pinned: bool = False
    classification: str = "feature"


class EdgeState(_Schema):
    source: str
    target: str
    trigger: str = ""
    active: bool = False
    progress: float = 0.0
    dynamic: bool = False


class LayoutSnapshot(_Schema):
    tick: int = 0
    strategy: str = "linear"
    nodes: List[NodePosition] = Field(default_factory=list)
    edges: List[EdgeState] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class TemplateMatch(_Schema):
    name: str
    compatibility: float = Field(ge=0.0, le=1.0)
    coverage: float = Field(ge=0.0, le=1.0)
    matched: bool = False
    missing_keywords: List[str] = Field(default_factory=list)
    recommendation: Optional[str] = None


class PhaseSampleView(_Schema):
    timestamp: float
    phase: Phase
    active_transition: Optional[str] = None


class MonitorSnapshot(_Schema):
    running: bool = False
    phase: Phase = Phase.IDLE
    current_screen: Optional[str] = None
    realtime_score: float = Field(default=0.0, ge=0.0, le=100.0)
    behavior_score: float = Field(default=100.0, ge=0.0, le=100.0)
    total_transitions: int = 0
    completed_flows: int = 0
    broken_flows: int = 0
    interactions: int = 0
    rejected_events: int = 0
    screen_history: List[str] = Field(default_factory=list)
    recent_samples: List[PhaseSampleView] = Field(default_factory=list)
    matches: List[TemplateMatch] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ExportPayload(_Schema):
    """Portable bundle: the source snapshot and everything derived from it."""
    exported_at: str
    specification: SpecSnapshot
    validation: ValidationReport
    layout: LayoutSnapshot
    monitor: MonitorSnapshot

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)
