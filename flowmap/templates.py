"""Workflow templates and LCS-based matching of observed phase sequences."""

from __future__ import annotations
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator

from .schemas import TemplateMatch
from .types import Complexity, Phase

S, D, P = Phase.SHOW, Phase.DO, Phase.PROCESS


class WorkflowTemplate(BaseModel, frozen=True):
    """A canonical interaction pattern. Immutable once defined."""
    name: str = Field(min_length=1)
    sequence: Tuple[Phase, ...]
    keywords: FrozenSet[str] = Field(default_factory=frozenset)
    complexity: Complexity = Complexity.SIMPLE
    description: str = ""

    @field_validator("keywords", mode="before")
    @classmethod
    def lower_keywords(cls, v):
        return frozenset(str(k).lower() for k in v)


TEMPLATE_LIBRARY: Tuple[WorkflowTemplate, ...] = (
    WorkflowTemplate(
        name="chat",
        sequence=(S, D, P, S),
        keywords={"message", "send", "chat", "reply"},
        complexity=Complexity.SIMPLE,
        description="Compose a message, send it, see it appear",
    ),
    WorkflowTemplate(
        name="authentication",
        sequence=(S, D, P, S),
        keywords={"login", "logout", "signup", "password"},
        complexity=Complexity.SIMPLE,
        description="Enter credentials and land on a signed-in screen",
    ),
    WorkflowTemplate(
        name="crud",
        sequence=(S, D, S, D, P, S),
        keywords={"add", "edit", "save", "delete"},
        complexity=Complexity.MODERATE,
        description="Open a form, fill it in, persist the record",
    ),
    WorkflowTemplate(
        name="search",
        sequence=(S, D, P, S, D, S),
        keywords={"search", "filter", "query", "result"},
        complexity=Complexity.MODERATE,
        description="Query, read results, drill into one",
    ),
    WorkflowTemplate(
        name="onboarding",
        sequence=(S, D, S, D, S, D, P, S),
        keywords={"start", "next", "skip", "finish"},
        complexity=Complexity.MODERATE,
        description="Step through an introductory wizard",
    ),
    WorkflowTemplate(
        name="navigation",
        sequence=(S, D, S, D, S),
        keywords={"view", "open", "back", "home"},
        complexity=Complexity.SIMPLE,
        description="Browse between screens without side effects",
    ),
    WorkflowTemplate(
        name="checkout",
        sequence=(S, D, P, S, D, P, S),
        keywords={"cart", "checkout", "pay", "confirm"},
        complexity=Complexity.COMPLEX,
        description="Review a cart, pay, receive confirmation",
    ),
)


def lcs_length(a: Sequence, b: Sequence) -> int:
    """Longest common subsequence length, O(len(a) * len(b))."""
    if not a or not b:
        return 0
    prev = [0] * (len(b) + 1)
    for x in a:
        row = [0]
        for j, y in enumerate(b, start=1):
            if x == y:
                row.append(prev[j - 1] + 1)
            else:
                row.append(max(prev[j], row[j - 1]))
        prev = row
    return prev[-1]


def compatibility(expected: Sequence[Phase], observed: Sequence[Phase]) -> float:
    """LCS length over the longer sequence's length; 0.0 when both are empty."""
    longest = max(len(expected), len(observed))
    if longest == 0:
        return 0.0
    return lcs_length(expected, observed) / longest


def coverage(template: WorkflowTemplate, labels: Iterable[str]) -> Tuple[float, List[str]]:
    """Fraction of keywords present in some label, plus the missing ones."""
    lowered = [label.lower() for label in labels]
    if not template.keywords:
        return 1.0, []
    missing = sorted(k for k in template.keywords if not any(k in label for label in lowered))
    return 1.0 - len(missing) / len(template.keywords), missing


def score_template(template: WorkflowTemplate, observed: Sequence[Phase], labels: Sequence[str],
                   threshold: float = 0.3, recommend_compatibility: float = 0.7,
                   recommend_coverage: float = 0.5) -> TemplateMatch:
    compat = compatibility(template.sequence, observed)
    cov, missing = coverage(template, labels)
    recommendation = None
    if compat >= recommend_compatibility and cov < recommend_coverage:
        recommendation = (
            f"Behavior looks like '{template.name}'; add actions for: {', '.join(missing)}"
        )
    return TemplateMatch(
        name=template.name,
        compatibility=round(compat, 4),
        coverage=round(cov, 4),
        matched=compat > threshold,
        missing_keywords=missing,
        recommendation=recommendation,
    )


def match_templates(observed: Sequence[Phase], labels: Sequence[str],
                    templates: Optional[Sequence[WorkflowTemplate]] = None,
                    threshold: float = 0.3, recommend_compatibility: float = 0.7,
                    recommend_coverage: float = 0.5) -> List[TemplateMatch]:
    """Score every template, best compatibility first (ties by coverage)."""
    library = TEMPLATE_LIBRARY if templates is None else templates
    scored = [
        score_template(t, observed, labels, threshold, recommend_compatibility, recommend_coverage)
        for t in library
    ]
    scored.sort(key=lambda m: (m.compatibility, m.coverage), reverse=True)
    return scored


def top_matches(matches: Sequence[TemplateMatch], n: int = 3) -> List[TemplateMatch]:
    return [m for m in matches if m.matched][:n]


def get_template(name: str) -> Optional[WorkflowTemplate]:
    for t in TEMPLATE_LIBRARY:
        if t.name == name:
            return t
    return None
