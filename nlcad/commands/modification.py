"""Modification, history and query commands."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Literal, Optional

from nlcad.commands.base import CommandBase, CommandKind
from nlcad.units import Dimension


class DimensionType(str, Enum):
    WIDTH = "Width"
    LENGTH = "Length"
    HEIGHT = "Height"
    DEPTH = "Depth"
    THICKNESS = "Thickness"
    DIAMETER = "Diameter"
    RADIUS = "Radius"


class ModificationType(str, Enum):
    SET_TO = "SetTo"
    INCREASE_BY = "IncreaseBy"
    DECREASE_BY = "DecreaseBy"
    MULTIPLY_BY = "MultiplyBy"
    DIVIDE_BY = "DivideBy"


class InfoType(str, Enum):
    MASS_PROPERTIES = "MassProperties"
    BOUNDING_BOX = "BoundingBox"
    FEATURE_LIST = "FeatureList"
    DOCUMENT_INFO = "DocumentInfo"


class ModifyDimension(CommandBase):
    """Change a dimension of the active part or of a named feature.

    For ``MultiplyBy``/``DivideBy`` only ``value.value`` is meaningful;
    the unit is ignored.
    """

    kind: Literal[CommandKind.MODIFY_DIMENSION] = CommandKind.MODIFY_DIMENSION
    dimension_type: DimensionType
    modification_type: ModificationType
    value: Dimension
    feature_name: Optional[str] = None

    @property
    def description(self) -> str:
        target = self.dimension_type.value.lower()
        if self.modification_type is ModificationType.SET_TO:
            return f"Set {target} to {self.value}"
        if self.modification_type is ModificationType.INCREASE_BY:
            return f"Increase {target} by {self.value}"
        if self.modification_type is ModificationType.DECREASE_BY:
            return f"Decrease {target} by {self.value}"
        if self.modification_type is ModificationType.MULTIPLY_BY:
            return f"Multiply {target} by {self.value.value:g}"
        return f"Divide {target} by {self.value.value:g}"

    def dimensions(self) -> list[Dimension]:
        if self.is_scale:
            return []
        return [self.value]

    @property
    def is_scale(self) -> bool:
        return self.modification_type in (ModificationType.MULTIPLY_BY, ModificationType.DIVIDE_BY)

    def apply_to(self, current: Dimension) -> Dimension:
        """Return the new dimension after applying this change to *current*."""
        if self.modification_type is ModificationType.SET_TO:
            return self.value
        if self.modification_type is ModificationType.INCREASE_BY:
            return current + self.value
        if self.modification_type is ModificationType.DECREASE_BY:
            return current - self.value
        if self.modification_type is ModificationType.MULTIPLY_BY:
            return current * self.value.value
        return current / self.value.value


class Undo(CommandBase):
    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.UNDO] = CommandKind.UNDO
    count: int = 1

    @property
    def description(self) -> str:
        return "Undo last action" if self.count == 1 else f"Undo last {self.count} actions"


class Redo(CommandBase):
    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.REDO] = CommandKind.REDO
    count: int = 1

    @property
    def description(self) -> str:
        return "Redo last action" if self.count == 1 else f"Redo last {self.count} actions"


class ShowInfo(CommandBase):
    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.SHOW_INFO] = CommandKind.SHOW_INFO
    info_type: InfoType = InfoType.DOCUMENT_INFO

    @property
    def description(self) -> str:
        labels = {
            InfoType.MASS_PROPERTIES: "mass properties",
            InfoType.BOUNDING_BOX: "bounding box",
            InfoType.FEATURE_LIST: "feature list",
            InfoType.DOCUMENT_INFO: "document info",
        }
        return f"Show {labels[self.info_type]}"
