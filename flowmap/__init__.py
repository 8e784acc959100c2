"""Flow graph validation, layout and runtime compliance monitoring."""

from .config import FlowMapSettings
from .errors import EmptyGraphWarning, FlowMapError, MalformedGraphError, SimulationInstabilityWarning
from .graph_model import FlowEdge, FlowGraph, ScreenNode
from .layout import LayoutEngine
from .monitor import FlowMonitor, MonitorState, PhaseSample
from .schemas import ExportPayload, MonitorSnapshot, ValidationReport
from .session import FlowSession
from .templates import TEMPLATE_LIBRARY, WorkflowTemplate, compatibility, match_templates
from .types import InteractionEvent, Phase, ScreenKind, ScreenRecord, SpecSnapshot, TransitionRecord
from .validator import validate

__all__ = [
    "FlowMapSettings",
    "FlowMapError",
    "MalformedGraphError",
    "EmptyGraphWarning",
    "SimulationInstabilityWarning",
    "FlowGraph",
    "FlowEdge",
    "ScreenNode",
    "LayoutEngine",
    "FlowMonitor",
    "MonitorState",
    "PhaseSample",
    "ValidationReport",
    "MonitorSnapshot",
    "ExportPayload",
    "FlowSession",
    "TEMPLATE_LIBRARY",
    "WorkflowTemplate",
    "compatibility",
    "match_templates",
    "InteractionEvent",
    "Phase",
    "ScreenKind",
    "ScreenRecord",
    "SpecSnapshot",
    "TransitionRecord",
    "validate",
]
