"""
Test configuration and fixtures for the flowmap test suite.
"""
import sys
import pytest
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from flowmap.config import FlowMapSettings
from flowmap.graph_model import FlowGraph
from flowmap.session import FlowSession
from helpers import make_graph


@pytest.fixture
def todo_spec() -> dict:
    """Welcome -> List <-> Add: no dead ends, no orphans, one cycle."""
    return {
        "screens": [
            {"id": "welcome", "name": "Welcome", "actions": ["start"]},
            {"id": "list", "name": "List", "actions": ["add"]},
            {"id": "add", "name": "Add", "actions": ["save"]},
        ],
        "transitions": [
            {"source": "Welcome", "trigger": "start", "destination": "List"},
            {"source": "List", "trigger": "add", "destination": "Add"},
            {"source": "Add", "trigger": "save", "destination": "List"},
        ],
    }


@pytest.fixture
def todo_graph(todo_spec) -> FlowGraph:
    return FlowGraph.from_snapshot(todo_spec)


@pytest.fixture
def graph_factory():
    return make_graph


@pytest.fixture
def settings() -> FlowMapSettings:
    return FlowMapSettings()


@pytest.fixture
def session(todo_spec, settings) -> FlowSession:
    s = FlowSession(settings=settings, clock=lambda: 0.0)
    s.load(todo_spec)
    return s
