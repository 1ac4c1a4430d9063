"""Feature commands: extrusions, fillets, chamfers, holes, deletion."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from nlcad.commands.base import CommandBase, CommandKind
from nlcad.units import Dimension


class Point3D(BaseModel):
    """A placement point, or a named reference such as ``"center"``."""

    model_config = ConfigDict(frozen=True)

    x: Dimension = Field(default_factory=Dimension.zero)
    y: Dimension = Field(default_factory=Dimension.zero)
    z: Dimension = Field(default_factory=Dimension.zero)
    reference: Optional[str] = None

    def __str__(self) -> str:
        if self.reference:
            return self.reference
        return f"({self.x}, {self.y}, {self.z})"


class AddExtrusion(CommandBase):
    kind: Literal[CommandKind.ADD_EXTRUSION] = CommandKind.ADD_EXTRUSION
    feature_name: str = "Extrusion"
    depth: Dimension
    is_cut: bool = False
    mid_plane: bool = False

    @property
    def description(self) -> str:
        if self.is_cut:
            return f"Cut extrude: {self.depth} deep"
        return f"Boss extrude: {self.depth} deep"

    def dimensions(self) -> list[Dimension]:
        return [self.depth]


class AddFillet(CommandBase):
    kind: Literal[CommandKind.ADD_FILLET] = CommandKind.ADD_FILLET
    feature_name: str = "Fillet"
    radius: Dimension
    all_edges: bool = False
    edges: tuple[str, ...] = ()

    @property
    def description(self) -> str:
        if self.all_edges:
            return f"Fillet all edges: R={self.radius}"
        return f"Fillet: R={self.radius}"

    def dimensions(self) -> list[Dimension]:
        return [self.radius]


class AddChamfer(CommandBase):
    kind: Literal[CommandKind.ADD_CHAMFER] = CommandKind.ADD_CHAMFER
    feature_name: str = "Chamfer"
    distance: Dimension
    distance2: Optional[Dimension] = None
    angle: Optional[float] = None
    all_edges: bool = False

    @property
    def description(self) -> str:
        if self.all_edges:
            return f"Chamfer all edges: {self.distance}"
        return f"Chamfer: {self.distance}"

    def dimensions(self) -> list[Dimension]:
        return [self.distance]


class AddHole(CommandBase):
    kind: Literal[CommandKind.ADD_HOLE] = CommandKind.ADD_HOLE
    feature_name: str = "Hole"
    diameter: Dimension
    depth: Optional[Dimension] = None
    through_all: bool = False
    location: Optional[Point3D] = None

    @property
    def description(self) -> str:
        if self.through_all:
            return f"Through hole: D={self.diameter}"
        return f"Hole: D={self.diameter}, Depth={self.depth}"

    def dimensions(self) -> list[Dimension]:
        if self.depth is not None:
            return [self.diameter, self.depth]
        return [self.diameter]


class DeleteFeature(CommandBase):
    """Remove a feature.

    ``feature_name`` wins when set.  Otherwise ``feature_kind`` and
    ``ordinal`` pick the target: ordinal 1 is the first feature of that
    kind, -1 the most recent.  With neither, the most recent feature goes.
    """

    kind: Literal[CommandKind.DELETE_FEATURE] = CommandKind.DELETE_FEATURE
    feature_name: Optional[str] = None
    feature_kind: Optional[CommandKind] = None
    ordinal: int = -1

    @property
    def description(self) -> str:
        if self.feature_name:
            return f"Delete feature '{self.feature_name}'"
        if self.feature_kind is None and self.ordinal == -1:
            return "Delete feature 'last feature'"
        return f"Delete {self.position}"

    @property
    def target_label(self) -> str:
        """``"Hole_2"``, ``"the first hole"``, ``"the last feature"``."""
        return self.feature_name or f"the {self.position}"

    @property
    def position(self) -> str:
        """``"first hole"``, ``"last feature"``."""
        noun = "feature"
        if self.feature_kind is not None:
            noun = FEATURE_NOUNS.get(self.feature_kind, noun)
        return f"{ordinal_word(self.ordinal)} {noun}"


# What users call each feature-producing kind
FEATURE_NOUNS: dict[CommandKind, str] = {
    CommandKind.CREATE_BOX: "box",
    CommandKind.CREATE_CYLINDER: "cylinder",
    CommandKind.ADD_EXTRUSION: "extrusion",
    CommandKind.ADD_FILLET: "fillet",
    CommandKind.ADD_CHAMFER: "chamfer",
    CommandKind.ADD_HOLE: "hole",
    CommandKind.ADD_LINEAR_PATTERN: "pattern",
    CommandKind.ADD_CIRCULAR_PATTERN: "circular pattern",
}

_ORDINAL_WORDS = {1: "first", 2: "second", 3: "third", 4: "fourth", 5: "fifth", -1: "last"}


def ordinal_word(ordinal: int) -> str:
    """``1`` -> ``"first"``; ``-1`` -> ``"last"``."""
    return _ORDINAL_WORDS.get(ordinal, f"#{ordinal}")
