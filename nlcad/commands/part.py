"""Part-level commands: create, save, export, close."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Literal, Optional

from nlcad.commands.base import CommandBase, CommandKind
from nlcad.units import Dimension, Unit


class ReferencePlane(str, Enum):
    FRONT = "Front"
    TOP = "Top"
    RIGHT = "Right"


class ExportFormat(str, Enum):
    SOLIDWORKS_PART = "SolidWorksPart"
    STEP = "STEP"
    IGES = "IGES"
    STL = "STL"
    PARASOLID = "Parasolid"
    DXF = "DXF"
    DWG = "DWG"
    PDF = "PDF"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS: dict[ExportFormat, str] = {
    ExportFormat.SOLIDWORKS_PART: ".sldprt",
    ExportFormat.STEP: ".step",
    ExportFormat.IGES: ".igs",
    ExportFormat.STL: ".stl",
    ExportFormat.PARASOLID: ".x_t",
    ExportFormat.DXF: ".dxf",
    ExportFormat.DWG: ".dwg",
    ExportFormat.PDF: ".pdf",
}


class CreatePart(CommandBase):
    kind: Literal[CommandKind.CREATE_PART] = CommandKind.CREATE_PART
    name: str
    units: Unit = Unit.INCH

    @property
    def description(self) -> str:
        return f"Create new part: {self.name}"


class CreateBox(CommandBase):
    """Rectangular box or plate: sketch a rectangle, extrude by height."""

    kind: Literal[CommandKind.CREATE_BOX] = CommandKind.CREATE_BOX
    name: str = "Box"
    width: Dimension
    length: Dimension
    height: Dimension
    sketch_plane: ReferencePlane = ReferencePlane.TOP
    centered: bool = True

    @property
    def description(self) -> str:
        return f"Create box '{self.name}': {self.width} x {self.length} x {self.height}"

    def dimensions(self) -> list[Dimension]:
        return [self.width, self.length, self.height]


class CreateCylinder(CommandBase):
    kind: Literal[CommandKind.CREATE_CYLINDER] = CommandKind.CREATE_CYLINDER
    name: str = "Cylinder"
    diameter: Dimension
    height: Dimension
    sketch_plane: ReferencePlane = ReferencePlane.TOP
    centered: bool = True

    @property
    def description(self) -> str:
        return f"Create cylinder '{self.name}': D={self.diameter}, H={self.height}"

    def dimensions(self) -> list[Dimension]:
        return [self.diameter, self.height]


class SavePart(CommandBase):
    """Save the active document.

    ``overwrite`` marks a save that replaces an existing file without
    keeping a version, which the risk table treats as destructive.
    """

    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.SAVE_PART] = CommandKind.SAVE_PART
    file_path: Optional[str] = None
    format: ExportFormat = ExportFormat.SOLIDWORKS_PART
    overwrite: bool = False

    @property
    def description(self) -> str:
        text = f"Save as {self.format.value}"
        if self.file_path:
            text += f" to {self.file_path}"
        return text


class ExportPart(CommandBase):
    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.EXPORT_PART] = CommandKind.EXPORT_PART
    file_path: str
    format: ExportFormat = ExportFormat.STEP

    @property
    def description(self) -> str:
        return f"Export as {self.format.value} to {self.file_path}"


class ClosePart(CommandBase):
    undoable: ClassVar[bool] = False

    kind: Literal[CommandKind.CLOSE_PART] = CommandKind.CLOSE_PART
    save_first: bool = False

    @property
    def description(self) -> str:
        return "Save and close part" if self.save_first else "Close part"
