"""Closed set of executable commands.

``Command`` is a discriminated union on ``kind``; use :data:`command_adapter`
to validate or dump any variant from plain data.
"""

from __future__ import annotations

from typing import Annotated, Union

from pydantic import Field, TypeAdapter

from nlcad.commands.assembly import (
    AddMate,
    CreateAssembly,
    FixComponent,
    InsertComponent,
    MateAlignment,
    MateReference,
    MateType,
)
from nlcad.commands.base import CommandBase, CommandKind, CommandResult, missing_kinds
from nlcad.commands.feature import (
    FEATURE_NOUNS,
    AddChamfer,
    AddExtrusion,
    AddFillet,
    AddHole,
    DeleteFeature,
    Point3D,
    ordinal_word,
)
from nlcad.commands.modification import (
    DimensionType,
    InfoType,
    ModificationType,
    ModifyDimension,
    Redo,
    ShowInfo,
    Undo,
)
from nlcad.commands.part import (
    ClosePart,
    CreateBox,
    CreateCylinder,
    CreatePart,
    ExportFormat,
    ExportPart,
    ReferencePlane,
    SavePart,
)
from nlcad.commands.pattern import AddCircularPattern, AddLinearPattern, PatternDirection

Command = Annotated[
    Union[
        CreatePart,
        CreateBox,
        CreateCylinder,
        AddExtrusion,
        AddFillet,
        AddChamfer,
        AddHole,
        AddLinearPattern,
        AddCircularPattern,
        ModifyDimension,
        DeleteFeature,
        SavePart,
        ExportPart,
        ClosePart,
        CreateAssembly,
        InsertComponent,
        AddMate,
        FixComponent,
        Undo,
        Redo,
        ShowInfo,
    ],
    Field(discriminator="kind"),
]

command_adapter: TypeAdapter[Command] = TypeAdapter(Command)

__all__ = [
    "FEATURE_NOUNS",
    "AddChamfer",
    "AddCircularPattern",
    "AddExtrusion",
    "AddFillet",
    "AddHole",
    "AddLinearPattern",
    "AddMate",
    "ClosePart",
    "Command",
    "CommandBase",
    "CommandKind",
    "CommandResult",
    "CreateAssembly",
    "CreateBox",
    "CreateCylinder",
    "CreatePart",
    "DeleteFeature",
    "DimensionType",
    "ExportFormat",
    "ExportPart",
    "FixComponent",
    "InfoType",
    "InsertComponent",
    "MateAlignment",
    "MateReference",
    "MateType",
    "ModificationType",
    "ModifyDimension",
    "PatternDirection",
    "Point3D",
    "Redo",
    "ReferencePlane",
    "SavePart",
    "ShowInfo",
    "Undo",
    "command_adapter",
    "missing_kinds",
    "ordinal_word",
]
