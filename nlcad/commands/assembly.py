"""Assembly commands: create, insert components, mate, fix."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from nlcad.commands.base import CommandBase, CommandKind
from nlcad.commands.feature import Point3D
from nlcad.units import Dimension, Unit


class MateType(str, Enum):
    COINCIDENT = "Coincident"
    CONCENTRIC = "Concentric"
    DISTANCE = "Distance"
    ANGLE = "Angle"
    PARALLEL = "Parallel"
    PERPENDICULAR = "Perpendicular"


class MateAlignment(str, Enum):
    ALIGNED = "Aligned"
    ANTI_ALIGNED = "AntiAligned"
    CLOSEST = "Closest"


class MateReference(BaseModel):
    """One side of a mate: an entity on a named component."""

    model_config = ConfigDict(frozen=True)

    component: str
    entity_type: str = "Face"
    entity: Optional[str] = None

    def __str__(self) -> str:
        if self.entity:
            return f"{self.component}.{self.entity}"
        return self.component


class CreateAssembly(CommandBase):
    kind: Literal[CommandKind.CREATE_ASSEMBLY] = CommandKind.CREATE_ASSEMBLY
    name: str = "Assembly1"
    units: Unit = Unit.INCH

    @property
    def description(self) -> str:
        return f"Create new assembly: {self.name}"


class InsertComponent(CommandBase):
    """Insert a part or sub-assembly into the active assembly.

    ``instance_name`` is assigned by the host when left empty.
    """

    kind: Literal[CommandKind.INSERT_COMPONENT] = CommandKind.INSERT_COMPONENT
    component_path: str
    instance_name: Optional[str] = None
    position: Optional[Point3D] = None
    fixed: bool = False

    @property
    def description(self) -> str:
        return f"Insert component: {self.component_stem}"

    @property
    def component_stem(self) -> str:
        """``"parts/Bracket.sldprt"`` -> ``"Bracket"``."""
        return PurePath(self.component_path.replace("\\", "/")).stem or self.component_path


class AddMate(CommandBase):
    kind: Literal[CommandKind.ADD_MATE] = CommandKind.ADD_MATE
    mate_type: MateType = MateType.COINCIDENT
    first: MateReference
    second: MateReference
    alignment: MateAlignment = MateAlignment.CLOSEST
    distance: Optional[Dimension] = None
    angle: Optional[float] = None
    flip: bool = False
    mate_name: Optional[str] = None

    @model_validator(mode="after")
    def _check_value(self) -> AddMate:
        if self.mate_type is MateType.DISTANCE and self.distance is None:
            raise ValueError("a distance mate needs a distance")
        if self.mate_type is MateType.ANGLE and self.angle is None:
            raise ValueError("an angle mate needs an angle")
        return self

    @property
    def description(self) -> str:
        text = f"Add {self.mate_type.value.lower()} mate: {self.first} to {self.second}"
        if self.mate_type is MateType.DISTANCE:
            text += f" at {self.distance}"
        elif self.mate_type is MateType.ANGLE:
            text += f" at {self.angle:g} deg"
        return text

    def dimensions(self) -> list[Dimension]:
        return [self.distance] if self.distance is not None else []


class FixComponent(CommandBase):
    kind: Literal[CommandKind.FIX_COMPONENT] = CommandKind.FIX_COMPONENT
    component: str
    fix: bool = True

    @property
    def description(self) -> str:
        if self.fix:
            return f"Fix {self.component} in place"
        return f"Float {self.component}"
