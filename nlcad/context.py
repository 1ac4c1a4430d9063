"""Per-session conversation state used to resolve referential input."""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from nlcad.commands import CommandBase, CommandKind, DimensionType, ModifyDimension, ReferencePlane
from nlcad.config import MAX_CONTEXT_TURNS, MAX_RECENT_DIMENSIONS
from nlcad.units import Dimension, Unit

logger = logging.getLogger(__name__)

# Kinds that do not change what "it" or "another one" refers to
_NON_REFERENTIAL = {CommandKind.UNDO, CommandKind.REDO, CommandKind.SHOW_INFO}

# Kinds that open a new document
_DOCUMENT_KINDS = {
    CommandKind.CREATE_PART,
    CommandKind.CREATE_BOX,
    CommandKind.CREATE_CYLINDER,
    CommandKind.CREATE_ASSEMBLY,
}

# Kinds whose result is a feature that "delete the first X" can target
_FEATURE_KINDS = {
    CommandKind.CREATE_BOX,
    CommandKind.CREATE_CYLINDER,
    CommandKind.ADD_EXTRUSION,
    CommandKind.ADD_FILLET,
    CommandKind.ADD_CHAMFER,
    CommandKind.ADD_HOLE,
    CommandKind.ADD_LINEAR_PATTERN,
    CommandKind.ADD_CIRCULAR_PATTERN,
}

# Command field -> the dimension it measures
_FIELD_TYPES: dict[str, DimensionType] = {
    "width": DimensionType.WIDTH,
    "length": DimensionType.LENGTH,
    "height": DimensionType.HEIGHT,
    "depth": DimensionType.DEPTH,
    "diameter": DimensionType.DIAMETER,
    "radius": DimensionType.RADIUS,
}

# Thickness of a plate is its height
_SAME_MEASURE: dict[DimensionType, tuple[DimensionType, ...]] = {
    DimensionType.THICKNESS: (DimensionType.THICKNESS, DimensionType.HEIGHT),
    DimensionType.HEIGHT: (DimensionType.HEIGHT, DimensionType.THICKNESS),
}

TypedDimension = tuple[Optional[DimensionType], Dimension]


@dataclass
class _TrackedFeature:
    kind: CommandKind
    name: str
    created_by: str
    deleted_by: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClarificationType(str, Enum):
    DIMENSION = "dimension"
    CONFIRMATION = "confirmation"
    SELECTION = "selection"
    NUMBER = "number"
    TEXT = "text"


class ClarificationRequest(BaseModel):
    """An outstanding question put to the user."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    original_input: str
    partial_intent: Optional[str] = None
    waiting_for: str = ""
    expected_type: ClarificationType = ClarificationType.TEXT
    requested_at: datetime = Field(default_factory=_utc_now)


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_input: str
    description: str
    at: datetime = Field(default_factory=_utc_now)


class ConversationContext:
    """Mutable conversation state for one session.

    Updated only after a successful execution; the incremental resolver
    reads it but never writes to it.
    """

    def __init__(self, default_unit: Unit = Unit.INCH) -> None:
        self.default_unit = default_unit
        self.last_command: Optional[CommandBase] = None
        self.last_document: Optional[str] = None
        self.last_plane: ReferencePlane = ReferencePlane.TOP
        self.implicit_reference: Any = None
        self.pending_clarification: Optional[ClarificationRequest] = None
        self.named_references: dict[str, Any] = {}
        self._last_by_kind: dict[CommandKind, CommandBase] = {}
        self._features: list[_TrackedFeature] = []
        self._undone: set[str] = set()
        self._dimensions: deque[TypedDimension] = deque(maxlen=MAX_RECENT_DIMENSIONS)
        self._turns: deque[ConversationTurn] = deque(maxlen=MAX_CONTEXT_TURNS)

    # -- commands ----------------------------------------------------------

    def last_command_of(self, kind: CommandKind) -> Optional[CommandBase]:
        """Most recent successful command of *kind*."""
        return self._last_by_kind.get(kind)

    # -- dimensions --------------------------------------------------------

    @property
    def recent_dimensions(self) -> tuple[Dimension, ...]:
        """Most recent first."""
        return tuple(dim for _, dim in reversed(self._dimensions))

    def push_dimension(self, dim: Dimension, dimension_type: DimensionType | None = None) -> None:
        self._dimensions.append((dimension_type, dim))

    def last_dimension_like(self, dimension_type: DimensionType | None = None) -> Optional[Dimension]:
        """Most recent dimension measuring *dimension_type*.

        Falls back to the most recent dimension of any type, so "make it
        wider" still has a scale when no width was ever mentioned.
        """
        if dimension_type is not None:
            wanted = _SAME_MEASURE.get(dimension_type, (dimension_type,))
            for measured, dim in reversed(self._dimensions):
                if measured in wanted:
                    return dim
        if self._dimensions:
            return self._dimensions[-1][1]
        return None

    # -- references --------------------------------------------------------

    def set_reference(self, name: str, reference: Any) -> None:
        self.named_references[name.lower()] = reference
        self.implicit_reference = reference

    def get_reference(self, name: str) -> Any:
        return self.named_references.get(name.lower())

    @property
    def features(self) -> tuple[tuple[CommandKind, str], ...]:
        """``(kind, name)`` of features that currently exist, oldest first."""
        return tuple((f.kind, f.name) for f in self._live_features())

    @property
    def components(self) -> tuple[str, ...]:
        """Instance names of components in the active assembly, oldest first."""
        return tuple(f.name for f in self._live_features(components=True))

    def _live_features(self, components: bool = False) -> list[_TrackedFeature]:
        # Undo hides what a command created and revives what it deleted
        return [
            f for f in self._features
            if (f.kind is CommandKind.INSERT_COMPONENT) == components
            and f.created_by not in self._undone and (f.deleted_by is None or f.deleted_by in self._undone)
        ]

    def find_feature(self, kind: CommandKind | None = None, ordinal: int = -1) -> Optional[str]:
        """Name of the *ordinal*-th feature of *kind* (1 = first, -1 = last).

        *kind* ``None`` counts every feature.
        """
        names = [f.name for f in self._live_features() if kind is None or f.kind is kind]
        index = ordinal - 1 if ordinal > 0 else ordinal
        if ordinal == 0 or not -len(names) <= index < len(names):
            return None
        return names[index]

    def feature_mentioned(self, text: str) -> Optional[str]:
        """A known feature name that appears as a word in *text*."""
        words = set(re.findall(r"[\w-]+", text.lower()))
        for feature in reversed(self._live_features()):
            if feature.name.lower() in words and feature.name.lower() in self.named_references:
                return feature.name
        return None

    # -- turns -------------------------------------------------------------

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def context_summary(self, max_turns: int = MAX_CONTEXT_TURNS) -> str:
        """Plain-text summary of recent state for the language model."""
        lines: list[str] = []
        if self.last_document:
            lines.append(f"Active part: {self.last_document}")
        if self.last_command is not None:
            lines.append(f"Last command: {self.last_command.description}")
        features = self._live_features()
        if features:
            lines.append(f"Features: {', '.join(f.name for f in features)}")
        if self.components:
            lines.append(f"Components: {', '.join(self.components)}")
        if self._dimensions:
            dims = ", ".join(str(d) for d in self.recent_dimensions[:3])
            lines.append(f"Recent dimensions: {dims}")
        lines.append(f"Default units: {self.default_unit.value}")
        recent = list(self._turns)[-max_turns:] if max_turns > 0 else []
        for turn in recent:
            lines.append(f"User: {turn.user_input} -> {turn.description}")
        return "\n".join(lines)

    # -- lifecycle ---------------------------------------------------------

    def on_command_executed(
        self,
        command: CommandBase,
        result_data: Any = None,
        user_input: str = "",
    ) -> None:
        """Record a successfully executed command."""
        kind = getattr(command, "kind", None)
        if kind not in _NON_REFERENTIAL:
            self.last_command = command
            self._last_by_kind[kind] = command

        if kind in _DOCUMENT_KINDS:
            self.last_document = getattr(command, "name", None)
            self.implicit_reference = command
            plane = getattr(command, "sketch_plane", None)
            if plane is not None:
                self.last_plane = plane

        feature_name = deleted = None
        if isinstance(result_data, dict):
            feature_name = result_data.get("feature")
            deleted = result_data.get("deleted")
            moved = result_data.get("moved") or ()
            if kind is CommandKind.UNDO:
                self._undone.update(moved)
            elif kind is CommandKind.REDO:
                self._undone.difference_update(moved)
            document = result_data.get("document")
            if document:
                self.last_document = document
        if feature_name:
            self.set_reference(feature_name, command)
            if kind in _FEATURE_KINDS or kind is CommandKind.INSERT_COMPONENT:
                self._features.append(_TrackedFeature(kind, feature_name, command.id))
        if deleted:
            self._forget_feature(deleted, command.id)

        for dim_type, dim in _typed_dimensions(command):
            self.push_dimension(dim, dim_type)

        self._turns.append(
            ConversationTurn(user_input=user_input or command.description, description=command.description)
        )
        self.pending_clarification = None
        logger.debug("Context updated after %s", command.description)

    def _forget_feature(self, name: str, deleted_by: str) -> None:
        for feature in self._live_features():
            if feature.name.lower() == name.lower():
                feature.deleted_by = deleted_by

    def clear(self) -> None:
        self.last_command = None
        self.last_document = None
        self.last_plane = ReferencePlane.TOP
        self.implicit_reference = None
        self.pending_clarification = None
        self.named_references.clear()
        self._last_by_kind.clear()
        self._features.clear()
        self._undone.clear()
        self._dimensions.clear()
        self._turns.clear()


def _typed_dimensions(command: CommandBase) -> list[TypedDimension]:
    """``command.dimensions()`` paired with what each one measures."""
    if isinstance(command, ModifyDimension):
        return [(command.dimension_type, dim) for dim in command.dimensions()]
    fields = {id(value): name for name, value in command if isinstance(value, Dimension)}
    return [(_FIELD_TYPES.get(fields.get(id(dim), "")), dim) for dim in command.dimensions()]
