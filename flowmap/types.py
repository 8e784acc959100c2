from __future__ import annotations
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, TypeAdapter, field_validator

from .errors import MalformedGraphError


class Phase(str, Enum):
    IDLE = "idle"
    SHOW = "show"
    DO = "do"
    PROCESS = "process"


class ScreenKind(str, Enum):
    """Classification tag used to cluster screens in the layout."""
    AUTH = "auth"
    MAIN = "main"
    ADMIN = "admin"
    ONBOARDING = "onboarding"
    FEATURE = "feature"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


_KIND_HINTS = (
    (ScreenKind.AUTH, ("login", "auth", "signup")),
    (ScreenKind.MAIN, ("dashboard", "home", "main")),
    (ScreenKind.ADMIN, ("admin", "settings")),
    (ScreenKind.ONBOARDING, ("onboard", "welcome", "tutorial")),
)


def classify_screen(name: str) -> ScreenKind:
    """Guess a screen's classification from its name."""
    lowered = name.lower()
    for kind, hints in _KIND_HINTS:
        if any(h in lowered for h in hints):
            return kind
    return ScreenKind.FEATURE


# ─── Specification records ──────────────────────────────────────
class ScreenRecord(BaseModel, frozen=True):
    """A screen declared in the specification."""
    kind: Literal["screen"] = "screen"
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    classification: Optional[ScreenKind] = None
    actions: Tuple[str, ...] = Field(default_factory=tuple)

    @field_validator("classification", mode="before")
    @classmethod
    def coerce_classification(cls, v):
        """Accept any casing; unknown hints become None and are inferred later."""
        if v is None or isinstance(v, ScreenKind):
            return v
        try:
            return ScreenKind(str(v).lower())
        except ValueError:
            return None

    @field_validator("actions", mode="before")
    @classmethod
    def coerce_actions(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        return tuple(str(a) for a in v)

    def resolved_kind(self) -> ScreenKind:
        return self.classification or classify_screen(self.name)


class TransitionRecord(BaseModel, frozen=True):
    """A declared navigation: `source --trigger--> destination`.

    Source and destination may name a screen by id or by display name.
    A missing destination is allowed here; the graph builder drops it.
    """
    kind: Literal["transition"] = "transition"
    source: str = Field(min_length=1)
    trigger: str = ""
    destination: Optional[str] = None

    @field_validator("destination", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


SpecRecord = Annotated[Union[ScreenRecord, TransitionRecord], Field(discriminator="kind")]
_record_adapter = TypeAdapter(SpecRecord)


class SpecSnapshot(BaseModel):
    """One parsed specification: ordered screens plus transitions."""
    screens: List[ScreenRecord] = Field(default_factory=list)
    transitions: List[TransitionRecord] = Field(default_factory=list)

    @classmethod
    def from_records(cls, records: Iterable[Union[Dict[str, Any], ScreenRecord, TransitionRecord]]) -> "SpecSnapshot":
        """Build a snapshot from a flat list of tagged records."""
        screens: List[ScreenRecord] = []
        transitions: List[TransitionRecord] = []
        for raw in records:
            try:
                record = raw if isinstance(raw, (ScreenRecord, TransitionRecord)) else _record_adapter.validate_python(raw)
            except ValidationError as e:
                raise MalformedGraphError(f"Invalid specification record {raw!r}: {e}") from e
            if isinstance(record, ScreenRecord):
                screens.append(record)
            elif isinstance(record, TransitionRecord):
                transitions.append(record)
            else:  # pragma: no cover - union is closed
                raise MalformedGraphError(f"Unknown record kind: {type(record).__name__}")
        return cls(screens=screens, transitions=transitions)

    @classmethod
    def parse(cls, data: Union["SpecSnapshot", Dict[str, Any], List[Any]]) -> "SpecSnapshot":
        """Accept a snapshot, a {screens, transitions} mapping, or a flat record list."""
        if isinstance(data, SpecSnapshot):
            return data
        if isinstance(data, list):
            return cls.from_records(data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedGraphError(f"Invalid specification snapshot: {e}") from e


# ─── Interaction events ─────────────────────────────────────────
class InteractionEvent(BaseModel):
    """A user-visible navigation reported by the preview."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    action_label: str = Field(default="", alias="actionLabel")
    from_screen_id: str = Field(alias="fromScreenId")
    to_screen_id: str = Field(alias="toScreenId")
    timestamp: float

    @field_validator("action_label", mode="before")
    @classmethod
    def coerce_label(cls, v):
        return "" if v is None else str(v)

    @property
    def is_refresh(self) -> bool:
        return "refresh" in self.action_label.lower()
