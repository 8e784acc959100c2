"""Tunable constants for validation, layout and monitoring.

Every value can be overridden from the environment, e.g.
``FLOWMAP_LAYOUT_DAMPING=0.9`` or ``FLOWMAP_MONITOR_SAMPLE_INTERVAL=0.25``.
The scoring weights are heuristics kept for parity with the existing tool,
not derived quantities.
"""

from __future__ import annotations
import os
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, Field


class ScoringWeights(BaseModel):
    dead_end_penalty: float = 20.0
    orphan_penalty: float = 15.0
    cycle_penalty: float = 25.0
    static_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    runtime_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    broken_flow_penalty: float = 40.0
    completed_flow_floor: float = 60.0
    stagnation_penalty: float = 20.0
    stagnation_window: int = Field(default=10, ge=1)


class LayoutSettings(BaseModel):
    width: float = Field(default=800.0, gt=0)
    height: float = Field(default=600.0, gt=0)
    margin: float = Field(default=40.0, ge=0)
    tick_interval: float = Field(default=1.0 / 30.0, gt=0)
    repulsion_strength: float = 5000.0
    repulsion_cutoff: float = 300.0
    min_distance: float = Field(default=30.0, gt=0)
    center_pull_fraction: float = Field(default=0.6, gt=0, le=1.0)
    center_pull_strength: float = 0.01
    spring_strength: float = 0.02
    rest_distance: float = 120.0
    damping: float = Field(default=0.85, gt=0, lt=1.0)
    edge_progress_step: float = Field(default=0.02, gt=0, lt=1.0)
    cluster_jitter: float = 40.0
    instability_ticks: int = Field(default=30, ge=1)


class MonitorSettings(BaseModel):
    sample_interval: float = Field(default=0.5, gt=0)
    show_recency: float = Field(default=1.0, gt=0)
    transition_duration: float = Field(default=0.3, gt=0)
    history_size: int = Field(default=50, ge=10)
    screen_history_size: int = Field(default=10, ge=1)
    flow_instance_limit: int = Field(default=20, ge=1)
    match_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    recommend_compatibility: float = Field(default=0.7, ge=0.0, le=1.0)
    recommend_coverage: float = Field(default=0.5, ge=0.0, le=1.0)
    top_matches: int = Field(default=3, ge=1)
    match_window: int = Field(default=10, ge=1)
    collapse_repeats: bool = False


class FlowMapSettings(BaseModel):
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    seed: int = 7

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "FlowMapSettings":
        """Build settings, overriding defaults from FLOWMAP_* variables."""
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for section, model in (("scoring", ScoringWeights), ("layout", LayoutSettings), ("monitor", MonitorSettings)):
            overrides = _section_overrides(env, section, model)
            if overrides:
                data[section] = overrides
        seed = env.get("FLOWMAP_SEED")
        if seed is not None:
            data["seed"] = seed
        return cls.model_validate(data)


def _section_overrides(env, section: str, model: Type[BaseModel]) -> Dict[str, str]:
    prefix = f"FLOWMAP_{section.upper()}_"
    overrides = {}
    for name in model.model_fields:
        value = env.get(prefix + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides
